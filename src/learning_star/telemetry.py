"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterator, Optional

LOGGER = logging.getLogger("learning_star.telemetry")


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    resource_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if resource_id:
        event["resource_id"] = resource_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    if extra:
        event.update(extra)
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, errors: list[str] | None = None
) -> None:
    details = {
        "model": model,
        "count": count,
        "duration_ms": round(duration_ms, 3),
        "errors": errors or [],
        "per_item_ms": round(duration_ms / count, 3) if count else None,
    }
    level = "warning" if errors else "info"
    log_event(LOGGER, "embeddings.compute", level=level, details=details)


def emit_ingest_event(
    step: str,
    *,
    resource_id: str,
    file_name: str,
    file_type: str,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    status: str | None = None,
    language: str | None = None,
    segments: int | None = None,
    chunks: int | None = None,
    errors: list[str] | None = None,
) -> None:
    details = {
        "file": file_name,
        "file_type": file_type,
        "size_bytes": size_bytes,
        "status": status,
        "language": language,
        "segments": segments,
        "chunks": chunks,
        "errors": errors or [],
    }
    level = "warning" if errors else "info"
    log_event(LOGGER, step, level=level, resource_id=resource_id, duration_ms=duration_ms, details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    resource_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        resource_id=resource_id,
        details=details,
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


__all__ = [
    "emit_embeddings_event",
    "emit_ingest_event",
    "emit_exception",
    "traced_duration",
    "log_event",
]
