# backend/ai_recruiter/errors.py


class RecruiterError(Exception):
    """Base class for errors raised by the recruiter backend."""


class ConfigurationError(RecruiterError):
    """Required input is missing; raised before any external call."""


class ExternalServiceError(RecruiterError):
    """The completion endpoint or the voice service failed."""


class ParseError(RecruiterError):
    """An external response was not the JSON we asked for."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw
