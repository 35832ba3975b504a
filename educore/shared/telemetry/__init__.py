"""Logging setup and tracing helpers."""

from educore.shared.telemetry.logging import setup_logging
from educore.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "add_span_attributes",
    "setup_logging",
    "traced",
]
