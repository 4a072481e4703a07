"""Exception hierarchy for the session synthesis pipeline."""


class SessionSynthError(Exception):
    """Base exception for all impact_synth errors."""


class ServiceError(SessionSynthError):
    """Raised when a text-generation call fails or times out."""


class ParseError(SessionSynthError):
    """Raised when generated text is not valid JSON after fence stripping."""


class NotFoundError(SessionSynthError):
    """Raised when a referenced program, fund, survey or milestone does not exist."""


class PersistenceError(SessionSynthError):
    """Raised when a write to the relational store fails."""
