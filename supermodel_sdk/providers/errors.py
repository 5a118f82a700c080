"""
Error mapping utilities for provider adapters.

This module provides consistent error mapping across all provider families,
converting SDK and transport exceptions to the pipeline's error taxonomy.
"""

from typing import Any, Optional

import anthropic
import httpx
import openai
from google.genai import errors as genai_errors

from ..errors import CredentialError, ProviderError, SupermodelError, TransportError


INVALID_KEY_PHRASES = ("api key not valid", "invalid api key", "invalid x-api-key", "incorrect api key")
CREDENTIAL_STATUS_CODES = {401, 403}


def extract_error_message(body: Any, fallback: Optional[str] = None) -> Optional[str]:
    """
    Pull the provider's structured error message out of a response body.

    Handles ``{"error": {"message": ...}}`` envelopes and bare
    ``{"message": ...}`` dicts (the openai SDK unwraps the envelope). Any other
    body, such as a proxy's HTML error page, yields ``fallback``.
    """
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
        if isinstance(inner, str) and inner:
            return inner
        if body.get("message"):
            return str(body["message"])
    return fallback


def _status_text(response: Optional[httpx.Response]) -> Optional[str]:
    if response is None:
        return None
    try:
        return response.reason_phrase or None
    except AttributeError:
        return None


def _looks_like_invalid_key(message: Optional[str]) -> bool:
    lowered = (message or "").lower()
    return any(phrase in lowered for phrase in INVALID_KEY_PHRASES)


class ErrorMapper:
    """Maps provider-specific errors to the pipeline's error taxonomy."""

    @staticmethod
    def map_transport_error(
        error: Exception,
        provider: str,
        is_local: bool = False,
        target: Optional[str] = None,
    ) -> TransportError:
        """
        Map a network-level failure.

        For local and custom endpoints the message hints that the server may
        not be running, so it reads differently from an HTTP error response.
        """
        if is_local:
            where = f" at {target}" if target else ""
            message = (
                f"Connection failed: Could not connect to the {provider} server{where}. "
                "Is the server running?"
            )
        else:
            message = f"Connection failed: Could not reach the {provider} API ({error})."
        mapped = TransportError(message, provider=provider, is_local=is_local)
        mapped.__cause__ = error
        return mapped

    @staticmethod
    def map_status_error(
        status_code: Optional[int],
        body: Any,
        response: Optional[httpx.Response],
        provider: str,
        label: str,
    ) -> SupermodelError:
        """
        Map an HTTP non-2xx answer.

        401/403 and "API key not valid" bodies become a rejected-credential
        error; everything else becomes ``ProviderError`` carrying the
        provider's own message (or the HTTP status text) behind ``label``.
        """
        detail = extract_error_message(body, fallback=_status_text(response))
        if status_code in CREDENTIAL_STATUS_CODES or _looks_like_invalid_key(detail):
            return CredentialError.rejected(provider, detail)
        if not detail:
            detail = f"HTTP {status_code}" if status_code else "unknown error"
        return ProviderError(f"{label}: {detail}", provider=provider, status_code=status_code)

    @staticmethod
    def map_openai_error(
        error: Exception,
        provider: str = "OpenAI",
        label: str = "OpenAI API error",
        is_local: bool = False,
        target: Optional[str] = None,
    ) -> SupermodelError:
        """
        Map openai SDK errors (used for OpenAI, local and custom endpoints).

        Args:
            error: The exception raised by the openai SDK or httpx
            provider: Provider label for credential messages
            label: Prefix for provider error messages
            is_local: Whether the endpoint is a local/custom server
            target: Endpoint URL, for connection hints
        """
        if isinstance(error, SupermodelError):
            return error
        if isinstance(error, (openai.APIConnectionError, httpx.TransportError)):
            return ErrorMapper.map_transport_error(error, provider, is_local, target)
        if isinstance(error, openai.APIStatusError):
            mapped = ErrorMapper.map_status_error(
                error.status_code, error.body, error.response, provider, label
            )
        else:
            mapped = ProviderError(f"{label}: {error}", provider=provider)
        if isinstance(mapped, ProviderError):
            mapped.original_error = error
        mapped.__cause__ = error
        return mapped

    @staticmethod
    def map_anthropic_error(error: Exception) -> SupermodelError:
        """Map anthropic SDK errors."""
        if isinstance(error, SupermodelError):
            return error
        if isinstance(error, (anthropic.APIConnectionError, httpx.TransportError)):
            return ErrorMapper.map_transport_error(error, "Anthropic")
        if isinstance(error, anthropic.APIStatusError):
            mapped = ErrorMapper.map_status_error(
                error.status_code, error.body, error.response, "Anthropic", "Anthropic API error"
            )
        else:
            mapped = ProviderError(f"Anthropic API error: {error}", provider="Anthropic")
        if isinstance(mapped, ProviderError):
            mapped.original_error = error
        mapped.__cause__ = error
        return mapped

    @staticmethod
    def map_google_error(error: Exception) -> SupermodelError:
        """
        Map google-genai errors.

        Gemini reports a bad key as a 400 whose message contains
        "API key not valid", so the message is checked as well as the code.
        """
        if isinstance(error, SupermodelError):
            return error
        if isinstance(error, httpx.TransportError):
            return ErrorMapper.map_transport_error(error, "Google")
        if isinstance(error, genai_errors.APIError):
            message = error.message or error.status or None
            mapped = ErrorMapper.map_status_error(
                error.code, {"message": message} if message else None, None,
                "Google", "Google API error",
            )
        else:
            message = str(error)
            if _looks_like_invalid_key(message):
                mapped = CredentialError.rejected("Google")
            else:
                mapped = ProviderError(f"Google API error: {message}", provider="Google")
        if isinstance(mapped, ProviderError):
            mapped.original_error = error
        mapped.__cause__ = error
        return mapped
