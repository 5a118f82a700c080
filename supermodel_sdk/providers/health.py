"""Reachability check for local OpenAI-compatible servers (Ollama and friends)."""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from ..config.constants import LOCAL_HEALTH_PATH, LOCAL_HEALTH_TIMEOUT


logger = logging.getLogger(__name__)


class ConnectionCheck(BaseModel):
    ok: bool
    error: Optional[str] = None


def health_url(url: str) -> str:
    """``{url}/api/tags``, the Ollama info endpoint."""
    return url.rstrip("/") + "/" + LOCAL_HEALTH_PATH


async def check_local_connection(
    url: str,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: float = LOCAL_HEALTH_TIMEOUT,
) -> ConnectionCheck:
    """
    Check that a local server answers.

    Tries the Ollama info endpoint first and falls back to the root URL when
    that answers 404, so non-Ollama servers still pass. A server that cannot be
    reached at all is reported differently from one that answers with an
    error status.
    """
    client = http_client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.get(health_url(url))
        if response.is_success:
            return ConnectionCheck(ok=True)

        if response.status_code == 404:
            root = await client.get(url)
            if root.is_success:
                return ConnectionCheck(ok=True)

        return ConnectionCheck(
            ok=False,
            error=f"Server responded with status {response.status_code}. Check the URL.",
        )
    except httpx.InvalidURL as e:
        return ConnectionCheck(ok=False, error=f"Invalid URL: {e}")
    except httpx.TransportError as e:
        logger.info("Local server check failed for %s: %s", url, e)
        return ConnectionCheck(
            ok=False,
            error="Could not connect to the server. Check the URL and ensure Ollama is running.",
        )
    finally:
        if http_client is None:
            await client.aclose()
