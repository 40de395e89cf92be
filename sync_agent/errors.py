# sync_agent/errors.py
"""
Exceptions raised by the Sync Agent

Only NoUsableAddressError and RegistrationError are meant to reach the
caller; the rest are handled inside the registration and heartbeat loops.
"""

from typing import Optional


class SyncAgentError(Exception):
    """Base class for all sync agent errors"""


class InvalidSettingsError(SyncAgentError):
    """Configuration value that cannot be used"""


class NoUsableAddressError(SyncAgentError):
    """No non-loopback IPv4 address found on any local interface"""

    def __init__(self, message: str = "couldn't obtain a local IPv4 address"):
        super().__init__(message)


class RegistrationAttemptError(SyncAgentError):
    """A single registration round trip failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RegistrationError(SyncAgentError):
    """Registration gave up after exhausting its attempt budget"""

    def __init__(
        self,
        attempts: int,
        last_cause: Optional[BaseException] = None,
        exhausted: bool = True,
    ):
        self.attempts = attempts
        self.last_cause = last_cause
        self.exhausted = exhausted
        super().__init__(
            f"max registration attempts reached ({attempts}): {last_cause}"
        )


class HeartbeatError(SyncAgentError):
    """A single heartbeat cycle failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
