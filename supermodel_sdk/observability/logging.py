"""
Structured logging for provider adapters.

Every record is prefixed with ``[provider=... model=... request_id=...]`` so a
single turn can be followed through the adapter logs. Records go through the
standard ``logging`` module under ``supermodel_sdk.providers.<family>``.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional


class ProviderLogger:
    """Logger bound to one provider family."""

    def __init__(self, family: str):
        self.family = family
        self.logger = logging.getLogger(f"supermodel_sdk.providers.{family}")

    def _prefix(self, fields: Dict[str, Any]) -> str:
        parts = [f"provider={self.family}"]
        parts.extend(f"{key}={value}" for key, value in fields.items() if value is not None)
        return f"[{' '.join(parts)}]"

    def log(self, level: int, message: str, **fields) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, "%s %s", self._prefix(fields), message)

    def debug(self, message: str, **fields) -> None:
        self.log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields) -> None:
        self.log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields) -> None:
        self.log(logging.WARNING, message, **fields)

    def error(self, message: str, error: Optional[Exception] = None, **fields) -> None:
        if error is not None:
            fields.setdefault("error_type", type(error).__name__)
            message = f"{message}: {error}"
        self.log(logging.ERROR, message, **fields)

    @asynccontextmanager
    async def track_request(self, method: str, model: str, request_id: Optional[str] = None):
        """
        Time one adapter call and log how it ended.

        Args:
            method: "stream" or "complete"
            model: Provider model identifier
            request_id: Correlation id; a short random one is generated if omitted

        Yields:
            Dict with ``request_id``, ``model``, ``method`` and ``started``
        """
        request: Dict[str, Any] = {
            "request_id": request_id or uuid.uuid4().hex[:8],
            "model": model,
            "method": method,
            "started": time.monotonic(),
        }
        self.debug(f"{method} request started", model=model, request_id=request["request_id"])

        def elapsed_ms() -> int:
            return int((time.monotonic() - request["started"]) * 1000)

        try:
            yield request
        except asyncio.CancelledError:
            self.info(f"{method} request abandoned", model=model,
                      request_id=request["request_id"], duration_ms=elapsed_ms())
            raise
        except Exception as e:
            self.error(f"{method} request failed", error=e, model=model,
                       request_id=request["request_id"], duration_ms=elapsed_ms())
            raise
        self.info(f"{method} request finished", model=model,
                  request_id=request["request_id"], duration_ms=elapsed_ms())

    def log_streaming_metrics(self, metrics: Dict[str, Any], model: str, request_id: str) -> None:
        """Summarise a stream from ``StreamAdapter.get_metrics()``."""
        duration = metrics.get("duration_seconds", 0.0)
        total_chars = metrics.get("total_chars", 0)
        self.info(
            "Stream summary",
            model=model,
            request_id=request_id,
            chunks=metrics.get("chunks", 0),
            total_chars=total_chars,
            duration_ms=int(duration * 1000),
            chars_per_second=int(total_chars / duration) if duration > 0 else 0,
            skipped_fragments=metrics.get("skipped_fragments") or None,
        )
