"""Structured logging for a machine-parseable audit trail of budget and gap events."""

from __future__ import annotations

import json
from pathlib import Path
from typing import IO, Any, Optional

import structlog
from structlog.processors import JSONRenderer
from structlog.typing import Processor

AUDIT_FILE_NAME = "audit.jsonl"

_configured = False
_logger: structlog.BoundLogger | None = None
_file_handle: Optional[IO[str]] = None


def configure_audit_logging(log_dir: str) -> Path:
    """One-time setup. Writes JSON lines to {log_dir}/audit.jsonl.

    Returns the audit file path. Calling again without
    :func:`reset_audit_logging` keeps the first destination.
    """
    global _configured, _logger, _file_handle
    audit_path = Path(log_dir) / AUDIT_FILE_NAME
    if _configured:
        return Path(_file_handle.name) if _file_handle is not None else audit_path
    audit_path.parent.mkdir(parents=True, exist_ok=True)
    _file_handle = open(audit_path, "a", encoding="utf-8")
    handle = _file_handle

    def _file_logger_factory(*args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(handle)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        JSONRenderer(),
    ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=_file_logger_factory,
        cache_logger_on_first_use=False,
    )
    _configured = True
    _logger = structlog.get_logger()
    return audit_path


def reset_audit_logging() -> None:
    """Close the audit file and return to the unconfigured (no-op) state."""
    global _configured, _logger, _file_handle
    if _file_handle is not None:
        _file_handle.close()
    _file_handle = None
    _logger = None
    _configured = False
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def is_audit_logging_configured() -> bool:
    return _configured


def bind_session(session_id: str) -> None:
    """Bind a session id so every audit line carries it."""
    structlog.contextvars.bind_contextvars(session_id=session_id)


def log_allocation(
    operation_id: str,
    operation_type: str,
    success: bool,
    *,
    resources: dict[str, float] | None = None,
    estimated_cost: float | None = None,
    errors: list[str] | None = None,
) -> None:
    """Log a resource allocation attempt."""
    payload: dict[str, Any] = {
        "operation_id": operation_id,
        "operation_type": operation_type,
        "success": success,
    }
    if resources is not None:
        payload["resources"] = resources
    if estimated_cost is not None:
        payload["estimated_cost"] = estimated_cost
    if errors:
        payload["errors"] = errors
    if _logger is not None:
        _logger.info("allocation", **payload)


def log_release(
    operation_id: str,
    *,
    actual_cost: float | None = None,
    duration: float | None = None,
    efficiency: float | None = None,
) -> None:
    """Log a resource release."""
    payload: dict[str, Any] = {"operation_id": operation_id}
    if actual_cost is not None:
        payload["actual_cost"] = actual_cost
    if duration is not None:
        payload["duration"] = duration
    if efficiency is not None:
        payload["efficiency"] = efficiency
    if _logger is not None:
        _logger.info("release", **payload)


def log_algorithm_call(algorithm: str, status: str, latency_ms: float, **summary: Any) -> None:
    """Log one analytics call (status: ok|error|cached)."""
    if _logger is not None:
        _logger.info("algorithm_call", algorithm=algorithm, status=status, latency_ms=latency_ms, **summary)


def log_gap_detection(total_gaps: int, by_type: dict[str, int]) -> None:
    if _logger is not None:
        _logger.info("gap_detection", total_gaps=total_gaps, by_type=by_type)


def log_gap_sweep(removed: dict[str, int], remaining: dict[str, int]) -> None:
    """Log a registry cleanup pass."""
    if _logger is not None:
        _logger.info("gap_sweep", removed=removed, remaining=remaining)


# ---------------------------------------------------------------------------
# JSONL replay helpers
# ---------------------------------------------------------------------------

_KNOWN_EVENTS = frozenset({"allocation", "release", "algorithm_call", "gap_detection", "gap_sweep"})


def normalize_jsonl_event(entry: dict[str, Any]) -> dict[str, Any] | None:
    """Convert one audit.jsonl line to a flat ``{"type", "ts", ...}`` event.

    structlog writes the event name into the "event" key and adds "timestamp"
    and "level". Unknown events are dropped.
    """
    ev = entry.get("event")
    if ev not in _KNOWN_EVENTS:
        return None
    out = {k: v for k, v in entry.items() if k not in ("event", "level", "timestamp")}
    out["type"] = ev
    out["ts"] = entry.get("timestamp", "")
    return out


def load_events_from_jsonl(path: str) -> list[dict[str, Any]]:
    """Read an audit.jsonl file and return normalized events.

    Skips lines that fail to parse or map to no known event type.
    """
    result: list[dict[str, Any]] = []
    try:
        with open(path, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                normalized = normalize_jsonl_event(entry)
                if normalized is not None:
                    result.append(normalized)
    except OSError:
        pass
    return result
