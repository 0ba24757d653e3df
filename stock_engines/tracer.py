"""
stock_engines.tracer -- STOCK_ENGINE_TRACE records for pure report builders.

Responsibility:
    ``@traced_engine`` wraps a pure builder and logs one record per call:
    engine name and version, a fingerprint of the snapshot it was given,
    and how long it took.  Two runs over the same materials, lots and
    movements log the same fingerprint, which is how a report can be tied
    back to the data it was computed from.

Architecture position:
    Engines -- support for the pure calculation layer.  Emits a log record
    and nothing else; the wrapped function stays free of I/O.

Invariants enforced:
    - Fingerprints depend on values, not identity or formatting: frozen
      DTOs are walked field by field, Decimals are normalised (1.50 == 1.5),
      mapping keys and set members are sorted.
    - Only keyword arguments named in ``fingerprint_fields`` are hashed; a
      missing one hashes like ``None``.

Usage:
    from stock_engines.tracer import traced_engine

    @traced_engine("valuation", "1.0", fingerprint_fields=("materials", "lots"))
    def build_valuation_report(*, materials, lots, metadata):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import time
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from stock_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_MESSAGE = "STOCK_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    match value:
        case None:
            return "null"
        case Enum():
            return str(value.value)
        case Decimal() if value.is_finite():
            return str(value.normalize())
        case datetime() | date():
            return value.isoformat()
        case str() | int() | float() | Decimal() | UUID():
            return str(value)
        case Mapping():
            items = sorted((str(k), _canonicalize(v)) for k, v in value.items())
            return "{" + ",".join(f"{k}:{v}" for k, v in items) + "}"
        case set() | frozenset():
            return "{" + ",".join(sorted(_canonicalize(v) for v in value)) + "}"
        case list() | tuple():
            return "[" + ",".join(_canonicalize(v) for v in value) + "]"
        case _ if dataclasses.is_dataclass(value) and not isinstance(value, type):
            fields = (
                f"{f.name}={_canonicalize(getattr(value, f.name))}"
                for f in dataclasses.fields(value)
            )
            return f"{type(value).__name__}(" + ",".join(fields) + ")"
        case _:
            return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """SHA-256 of the named keyword inputs, truncated to 16 hex chars."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorate a pure builder so each call logs a STOCK_ENGINE_TRACE record."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = (
                compute_input_fingerprint(fingerprint_fields, kwargs)
                if fingerprint_fields
                else ""
            )
            started = time.perf_counter()
            result = func(*args, **kwargs)
            _logger.info(
                TRACE_MESSAGE,
                extra={
                    "trace_type": TRACE_MESSAGE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
