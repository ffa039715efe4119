"""
LANDLEDGER Observability

Structured logging and audit emission for the registry.
Every chaincode invocation runs under a transaction id held in a context
variable, so all log lines of one invocation can be correlated.

    ┌─────────────────────────────────────────────────────────┐
    │                    Registry Code                         │
    │  logger.info("msg", owner=x)   audit.log(action, ...)   │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                     LedgerLogger                         │
    │       transaction ids, layers, structured context       │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │         StructuredHandler (JSON) │ TextHandler           │
    └─────────────────────────────────────────────────────────┘

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import sys
import threading
import time
import traceback
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Deque, Dict, List, Optional, TypeVar

tx_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("tx_id", default="")

ROOT_LOGGER_NAME = "landledger"


class LedgerLayer(Enum):
    """LANDLEDGER layers for categorization."""
    CODEC = "codec"
    INDEX = "index"
    REGISTRY = "registry"
    CHAINCODE = "chaincode"
    STORE = "store"
    HEALTH = "health"
    CONFIG = "config"
    CLI = "cli"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    tx_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _event_from_record(record: logging.LogRecord) -> LogEvent:
    event = LogEvent(
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        level=record.levelname.lower(),
        logger=record.name,
        message=record.getMessage(),
        tx_id=tx_id_var.get(),
        layer=getattr(record, "layer", ""),
        operation=getattr(record, "operation", ""),
        duration_ms=getattr(record, "duration_ms", None),
        error_code=getattr(record, "error_code", ""),
        context=getattr(record, "context", {}),
    )
    if record.exc_info:
        event.exception = "".join(traceback.format_exception(*record.exc_info))
    return event


class StructuredHandler(logging.Handler):
    """Logging handler that outputs one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(_event_from_record(record).to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TextHandler(logging.Handler):
    """Human-readable single-line handler."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = _event_from_record(record)
            ctx = " ".join(f"{k}={v}" for k, v in event.context.items())
            tx = f" [{event.tx_id}]" if event.tx_id else ""
            line = f"{event.timestamp} {event.level.upper():8s} {event.logger}{tx} {event.message}"
            if ctx:
                line += f" {ctx}"
            self.stream.write(line + "\n")
            if event.exception:
                self.stream.write(event.exception)
            self.stream.flush()
        except Exception:
            self.handleError(record)


def configure_logging(
    level: str = "warning",
    fmt: str = "json",
    stream: Any = None,
) -> logging.Logger:
    """
    Install a single handler on the ``landledger`` root logger.

    Component loggers propagate to it, so calling this again swaps the
    handler instead of stacking a second one.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if isinstance(handler, (StructuredHandler, TextHandler)):
            root.removeHandler(handler)

    handler: logging.Handler = TextHandler(stream) if fmt == "text" else StructuredHandler(stream)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper()))
    return root


class LedgerLogger:
    """
    Structured logger for LANDLEDGER components.

    Includes the transaction id and layer in every event.
    """

    def __init__(self, name: str, layer: LedgerLayer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{layer.value}.{name}")

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


def generate_tx_id() -> str:
    """Generate a new transaction id."""
    return f"tx-{uuid.uuid4().hex[:12]}"


def set_tx_id(tx_id: str) -> contextvars.Token:
    """Set the transaction id for the current context."""
    return tx_id_var.set(tx_id)


def reset_tx_id(token: contextvars.Token) -> None:
    tx_id_var.reset(token)


def get_tx_id() -> str:
    """Get the current transaction id, creating one if unset."""
    tx_id = tx_id_var.get()
    if not tx_id:
        tx_id = generate_tx_id()
        tx_id_var.set(tx_id)
    return tx_id


def get_logger(name: str, layer: LedgerLayer) -> LedgerLogger:
    """Get a logger for a LANDLEDGER component."""
    return LedgerLogger(name, layer)


T = TypeVar("T")


def timed_operation(
    logger: LedgerLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator


@dataclass
class AuditEvent:
    """Audit event for one committed registry transaction."""
    event_id: str
    timestamp: str
    action: str
    resource_type: str
    resource_id: str
    outcome: str  # success, failure
    tx_id: str = ""
    keys_written: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    previous_hash: str = ""
    event_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AuditLogger:
    """
    Hash-chained audit trail.

    Each event's hash covers its content and the previous hash, so a
    tampered or dropped event breaks the chain.

    Only the newest ``max_events`` events are held in memory. When the
    oldest is evicted its hash becomes the anchor that ``verify_chain``
    starts from; every event is also emitted to the log, which is the
    durable record.
    """

    GENESIS = "genesis"
    DEFAULT_MAX_EVENTS = 10_000

    def __init__(self, logger: LedgerLogger, enabled: bool = True, max_events: int = DEFAULT_MAX_EVENTS):
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._logger = logger
        self._enabled = enabled
        self._last_hash: str = self.GENESIS
        self._anchor_hash: str = self.GENESIS
        self._events: Deque[AuditEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    @staticmethod
    def compute_hash(event: AuditEvent, previous_hash: str) -> str:
        body = event.to_dict()
        body.pop("event_hash", None)
        body["previous_hash"] = previous_hash
        data = json.dumps(body, sort_keys=True, default=str)
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    @property
    def events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)

    def log(
        self,
        action: str,
        resource_type: str,
        resource_id: str,
        outcome: str,
        keys_written: Optional[List[str]] = None,
        **details: Any,
    ) -> Optional[AuditEvent]:
        """Record an audit event. Returns None when auditing is disabled."""
        if not self._enabled:
            return None

        event = AuditEvent(
            event_id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc).isoformat(),
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            outcome=outcome,
            tx_id=get_tx_id(),
            keys_written=list(keys_written or []),
            details=details,
        )

        with self._lock:
            event.previous_hash = self._last_hash
            event.event_hash = self.compute_hash(event, self._last_hash)
            self._last_hash = event.event_hash
            if len(self._events) == self._events.maxlen:
                self._anchor_hash = self._events[0].event_hash
            self._events.append(event)

        self._logger.info(
            f"AUDIT: {action} on {resource_type}/{resource_id}",
            operation="audit",
            outcome=outcome,
            event_hash=event.event_hash,
            keys_written=event.keys_written,
        )
        return event

    def verify_chain(self) -> bool:
        """Recompute every retained hash and check the links."""
        with self._lock:
            previous = self._anchor_hash
            events = list(self._events)
        for event in events:
            if event.previous_hash != previous:
                return False
            if self.compute_hash(event, previous) != event.event_hash:
                return False
            previous = event.event_hash
        return True
