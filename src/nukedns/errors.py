class NukeDNSError(Exception):
    """Base class for nukedns errors."""


class ResolveError(NukeDNSError):
    """
    Brief: The upstream resolver could not produce an answer.

    Inputs:
    - message: description (timeout, transport error, bad reply)

    Outputs:
    - Exception instance
    """


class ConfigError(NukeDNSError, ValueError):
    """Invalid configuration value or document."""
