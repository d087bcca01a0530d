"""
costing_engines.tracer -- COSTING_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure engine function and, when the
    ``costing.engines.tracer`` logger is enabled for DEBUG, emits one
    structured record per call: engine name and version, a fingerprint of
    the selected inputs, the call duration, and whether the call raised.

Architecture position:
    Engines -- observability support only.  The wrapper reads arguments
    and logs; it never alters inputs or results.

Invariants enforced:
    - Fingerprints are deterministic across processes: Decimals are
      normalized, mappings and sets are sorted, frozen domain records are
      reduced field by field.
    - Exceptions raised by the engine propagate unchanged.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from costing_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_TYPE = "COSTING_ENGINE_TRACE"


def canonical_form(value: Any) -> str:
    """Stable text form of an engine argument."""
    match value:
        case None:
            return "null"
        case Enum():
            return str(value.value)
        case Decimal():
            return format(value.normalize(), "f") if value else "0"
        case bool() | int() | str():
            return str(value)
        case date():
            return value.isoformat()
        case Mapping():
            pairs = sorted((canonical_form(k), canonical_form(v)) for k, v in value.items())
            return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
        case set() | frozenset():
            return "{" + ",".join(sorted(canonical_form(v) for v in value)) + "}"
        case list() | tuple():
            return "[" + ",".join(canonical_form(v) for v in value) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = (
            f"{f.name}={canonical_form(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}(" + ",".join(fields) + ")"
    return repr(value)


def input_fingerprint(fields: tuple[str, ...], arguments: Mapping[str, Any]) -> str:
    """First 16 hex chars of SHA-256 over ``field=value`` pairs; absent fields are null."""
    text = "|".join(f"{name}={canonical_form(arguments.get(name))}" for name in fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorate a pure engine function with COSTING_ENGINE_TRACE logging.

    Args:
        engine_name: Engine identifier, e.g. ``"calendar"``.
        engine_version: Version of the engine's rules, e.g. ``"1.0"``.
        fingerprint_fields: Parameter names hashed into the fingerprint.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _logger.isEnabledFor(logging.DEBUG):
                return func(*args, **kwargs)

            arguments = signature.bind_partial(*args, **kwargs).arguments
            started = time.monotonic()
            outcome = "ok"
            try:
                return func(*args, **kwargs)
            except Exception:
                outcome = "error"
                raise
            finally:
                _logger.debug(TRACE_TYPE, extra={
                    "trace_type": TRACE_TYPE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": (
                        input_fingerprint(fingerprint_fields, arguments)
                        if fingerprint_fields else ""
                    ),
                    "outcome": outcome,
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                })

        return wrapper

    return decorator
