"""
Error taxonomy for the skill-pack generation pipeline.

Every failure a turn can hit is one of these types. Fatal errors end the turn
and are rendered as the assistant message ("Error: ..."); non-fatal ones
(a single bad stream fragment, a failing postprocessing script) are logged
or attached to the turn as warnings.
"""

from typing import Optional


class SupermodelError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        """Message suitable for rendering in the conversation."""
        return self.message


class ConfigurationError(SupermodelError):
    """A required skill, catalog entry or provider registration is missing."""


class CredentialError(SupermodelError):
    """
    Provider credentials are missing or were rejected.

    Attributes:
        provider: Provider label (e.g. "Google", "OpenAI")
        kind: "missing" when nothing is configured, "rejected" when the
            provider refused the key
    """

    MISSING = "missing"
    REJECTED = "rejected"

    def __init__(self, message: str, provider: str, kind: str = MISSING):
        super().__init__(message)
        self.provider = provider
        self.kind = kind

    @classmethod
    def missing(cls, provider: str) -> "CredentialError":
        return cls(f"{provider} API Key is missing.", provider, cls.MISSING)

    @classmethod
    def rejected(cls, provider: str, detail: Optional[str] = None) -> "CredentialError":
        message = f"API call failed: The provided {provider} API Key is not valid."
        if detail:
            message = f"{message} ({detail})"
        return cls(message, provider, cls.REJECTED)


class TransportError(SupermodelError):
    """The provider or local server could not be reached."""

    def __init__(self, message: str, provider: str, is_local: bool = False):
        super().__init__(message)
        self.provider = provider
        self.is_local = is_local


class ProviderError(SupermodelError):
    """
    The provider answered with a non-2xx status.

    Attributes:
        provider: Provider label used in the message prefix
        status_code: HTTP status code if known
    """

    def __init__(self, message: str, provider: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.original_error: Optional[Exception] = None


class ProtocolError(SupermodelError):
    """The provider response could not be parsed at all."""

    def __init__(self, message: str, provider: str):
        super().__init__(message)
        self.provider = provider


class ScriptError(SupermodelError):
    """A skill's pre- or postprocessing script failed."""

    PREPROCESSING = "preprocessing"
    POSTPROCESSING = "postprocessing"

    def __init__(self, phase: str, detail: str):
        self.phase = phase
        self.detail = detail
        super().__init__(f"Skill Pack Error ({phase.capitalize()}): {detail}")
