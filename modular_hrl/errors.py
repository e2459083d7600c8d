from __future__ import annotations


class HRLError(Exception):
    """Base class for errors raised by the learning core."""


class ConfigurationError(HRLError, ValueError):
    """Fatal misconfiguration detected while assembling worlds, modules or agents."""


class UnreachableStateError(HRLError, LookupError):
    """A state showed up that is not part of the declared enumeration."""

    def __init__(self, state, where: str = "world"):
        self.state = state
        self.where = where
        super().__init__(f"{where}: state {state!r} is outside the enumerated state space")
