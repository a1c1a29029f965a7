"""Data files shipped with nukedns."""
