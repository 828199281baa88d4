"""Core infrastructure: logging, Sentry, correlation IDs, clock and ID sources."""

from core.clock import Clock, FixedClock, SystemClock, system_clock
from core.correlation import (
    correlation_id_var,
    generate_correlation_id,
    get_correlation_id,
    operation_scope,
    set_correlation_id,
)
from core.id_generator import (
    IdGenerator,
    SequentialIdGenerator,
    UuidIdGenerator,
    default_id_generator,
)
from core.logging_config import configure_logging
from core.sentry_config import init_sentry

__all__ = [
    "init_sentry",
    "configure_logging",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
    "correlation_id_var",
    "operation_scope",
    "Clock",
    "FixedClock",
    "SystemClock",
    "system_clock",
    "IdGenerator",
    "SequentialIdGenerator",
    "UuidIdGenerator",
    "default_id_generator",
]
