"""
Brief: Global pytest configuration: src/ on sys.path, per-test 10s timeout,
and shared fakes for the resolution pipeline.

Inputs:
  - None

Outputs:
  - None
"""

import os
import signal
import sys

import pytest

# Ensure 'src' is on sys.path so 'nukedns' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from nukedns.errors import ResolveError  # noqa: E402


def _alarm_handler(signum, frame):
    raise TimeoutError("Test exceeded 10 seconds")


if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        yield


class FakeClock:
    """Brief: Manually advanced clock for AnswerCache expiry tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubResolver:
    """
    Brief: UpstreamResolver stand-in recording every call.

    Inputs:
      - answers: mapping (name, qtype) -> list of RR, or an Exception to raise
      - default: list returned for unknown keys

    Outputs:
      - calls: list of (name, qtype) tuples in call order
    """

    def __init__(self, answers=None, default=None):
        self.answers = dict(answers or {})
        self.default = default
        self.calls = []

    def resolve(self, name, qtype):
        self.calls.append((name, qtype))
        result = self.answers.get((name, qtype), self.default)
        if isinstance(result, Exception):
            raise result
        if result is None:
            raise ResolveError(f"no stub answer for {name}")
        return list(result)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stub_resolver():
    return StubResolver()
