"""Structured event logging for quicksheets.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from quicksheets.logging.events import (
    EventLevel,
    EventType,
    QuicksheetsEvent,
    emit,
    emit_info,
    emit_warning,
    make_formula_event,
    set_log_dir,
    truncate_context,
)
from quicksheets.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "QuicksheetsEvent",
    "emit",
    "emit_info",
    "emit_warning",
    "make_formula_event",
    "set_log_dir",
    "truncate_context",
]
