"""AI recruiter backend: interview generation, live voice sessions and feedback."""

__version__ = "1.0.0"
