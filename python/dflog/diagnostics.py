"""Non-fatal anomaly reports collected while decoding."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticKind(Enum):
    SKIPPED_BYTES = "skipped_bytes"
    UNKNOWN_TYPE = "unknown_type"
    TRUNCATED_RECORD = "truncated_record"
    TRUNCATED_FORMAT = "truncated_format"
    UNKNOWN_FIELD_TYPE = "unknown_field_type"
    FIELD_COUNT_MISMATCH = "field_count_mismatch"
    FORMAT_REDEFINED = "format_redefined"


@dataclass(frozen=True)
class Diagnostic:
    offset: int
    kind: DiagnosticKind
    message: str

    def __str__(self) -> str:
        return f"@{self.offset}: {self.kind.value}: {self.message}"


def report(diagnostics: list[Diagnostic] | None, offset: int,
           kind: DiagnosticKind, message: str) -> None:
    """Append a diagnostic if the caller asked for them."""
    if diagnostics is not None:
        diagnostics.append(Diagnostic(offset, kind, message))
