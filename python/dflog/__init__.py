"""dflog - ArduPilot DataFlash log decoder."""

from .schema import FormatRegistry, LogFormat, FieldType
from .decoder import LogRecord, decode_record
from .diagnostics import Diagnostic, DiagnosticKind
from .store import MessageStore
from .scanner import ParseCancelled, iter_records, scan
from .log import DataFlashLog, parse, parse_bytes, iter_messages

__all__ = [
    "FormatRegistry", "LogFormat", "FieldType",
    "LogRecord", "decode_record",
    "Diagnostic", "DiagnosticKind",
    "MessageStore",
    "ParseCancelled", "iter_records", "scan",
    "DataFlashLog", "parse", "parse_bytes", "iter_messages",
]
