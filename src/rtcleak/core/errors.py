"""Exception types raised across rtcleak."""

from __future__ import annotations


class RtcLeakError(Exception):
    """Base class for rtcleak errors."""


class HookInstallationError(RtcLeakError):
    """Raised when the candidate stream of a connection cannot be observed."""

    def __init__(self, target: object, reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot observe {type(target).__name__}: {reason}")


class ConfigError(RtcLeakError):
    """Raised when configuration values are present but invalid."""
