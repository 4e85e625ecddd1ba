"""FORMAT record parsing and the per-session format registry."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .diagnostics import Diagnostic, DiagnosticKind, report

logger = logging.getLogger(__name__)

# Wire format constants
HEAD1 = 0xA3
HEAD2 = 0x95
SENTINEL = bytes((HEAD1, HEAD2))
HEADER_SIZE = 3  # sentinel + type id

FORMAT_TYPE_ID = 0x80

NAME_MAX = 4
FORMAT_MAX = 16
LABELS_MAX = 64

# Packed FORMAT body (after the 3-byte header)
_FORMAT_WIRE_FMT = f"<BB{NAME_MAX}s{FORMAT_MAX}s{LABELS_MAX}s"
FORMAT_BODY_SIZE = struct.calcsize(_FORMAT_WIRE_FMT)  # 86

# Characters removed from both ends of fixed-width strings
_TRIM_CHARS = "".join(chr(c) for c in range(0x21))


class FieldType(Enum):
    """Closed set of field type codes carried by FORMAT records."""

    INT8 = "b"
    UINT8 = "B"
    INT16 = "h"
    UINT16 = "H"
    INT32 = "i"
    UINT32 = "I"
    FLOAT32 = "f"
    FLOAT64 = "d"
    CHAR4 = "n"
    CHAR16 = "N"
    CHAR64 = "Z"
    INT64 = "q"
    # Decoded signed, same as INT64
    UINT64 = "Q"

    @property
    def code(self) -> str:
        return self.value

    @property
    def struct_fmt(self) -> str:
        return _TYPE_FMT[self]

    @property
    def size(self) -> int:
        return struct.calcsize("<" + _TYPE_FMT[self])

    @property
    def is_text(self) -> bool:
        return self in (FieldType.CHAR4, FieldType.CHAR16, FieldType.CHAR64)

    @classmethod
    def from_code(cls, code: str) -> FieldType | None:
        """Map a type code to its FieldType, or None if unrecognised."""
        return _CODE_TO_TYPE.get(code)


# struct format chars indexed by FieldType (little-endian base)
_TYPE_FMT = {
    FieldType.INT8: "b",
    FieldType.UINT8: "B",
    FieldType.INT16: "h",
    FieldType.UINT16: "H",
    FieldType.INT32: "i",
    FieldType.UINT32: "I",
    FieldType.FLOAT32: "f",
    FieldType.FLOAT64: "d",
    FieldType.CHAR4: "4s",
    FieldType.CHAR16: "16s",
    FieldType.CHAR64: "64s",
    FieldType.INT64: "q",
    FieldType.UINT64: "q",
}

_CODE_TO_TYPE = {t.value: t for t in FieldType}


def unpack_str(raw: bytes) -> str:
    """Decode a fixed-size ASCII field, trimming NUL and whitespace padding."""
    return raw.decode("ascii", errors="replace").strip(_TRIM_CHARS)


def trim_name(name: str) -> str:
    """Normalise a record type name the same way names are read off the wire."""
    return name.strip(_TRIM_CHARS)


def _split_labels(labels: str) -> tuple[str, ...]:
    # Trailing empty labels carry no field
    names = labels.split(",")
    while names and not names[-1]:
        names.pop()
    return tuple(names)


@dataclass(frozen=True)
class LogFormat:
    """Layout of one data record type, as declared by a FORMAT record."""

    type_id: int
    record_length: int
    name: str
    format: str
    labels: str

    @property
    def field_types(self) -> tuple[str, ...]:
        return tuple(self.format)

    @property
    def field_names(self) -> tuple[str, ...]:
        return _split_labels(self.labels)

    @property
    def field_count(self) -> int:
        """Number of fields actually decoded: the shorter of types and names."""
        return min(len(self.format), len(self.field_names))

    @property
    def body_size(self) -> int:
        return max(self.record_length - HEADER_SIZE, 0)

    @classmethod
    def from_bytes(cls, body: bytes) -> LogFormat:
        """Parse a FORMAT record body (the 86 bytes after the header)."""
        if len(body) != FORMAT_BODY_SIZE:
            raise ValueError(
                f"FORMAT body must be {FORMAT_BODY_SIZE} bytes, got {len(body)}")
        type_id, length, name_raw, fmt_raw, labels_raw = \
            struct.unpack(_FORMAT_WIRE_FMT, body)
        return cls(type_id, length, unpack_str(name_raw),
                   unpack_str(fmt_raw), unpack_str(labels_raw))


class FormatRegistry:
    """Type id -> LogFormat mapping owned by a single decode session."""

    def __init__(self, formats: list[LogFormat] | None = None):
        self.formats: dict[int, LogFormat] = {}
        if formats:
            for f in formats:
                self.formats[f.type_id] = f

    def register_format(self, body: bytes, offset: int = 0,
                        diagnostics: list[Diagnostic] | None = None) -> LogFormat:
        """Parse a FORMAT body and store it, replacing any earlier definition.

        No cross-checking is done between the declared record length and the
        field layout; a mismatch between type codes and labels is only
        reported.  *offset* is the position of the record in its buffer and
        is used for diagnostics only.
        """
        fmt = LogFormat.from_bytes(body)

        previous = self.formats.get(fmt.type_id)
        if previous is not None and previous != fmt:
            logger.debug("format %d redefined at offset %d: %s -> %s",
                         fmt.type_id, offset, previous.name, fmt.name)
            report(diagnostics, offset, DiagnosticKind.FORMAT_REDEFINED,
                   f"type {fmt.type_id} redefined ({previous.name} -> {fmt.name})")

        n_types, n_names = len(fmt.format), len(fmt.field_names)
        if n_types != n_names:
            logger.debug("format %d (%s) has %d type codes but %d labels",
                         fmt.type_id, fmt.name, n_types, n_names)
            report(diagnostics, offset, DiagnosticKind.FIELD_COUNT_MISMATCH,
                   f"{fmt.name}: {n_types} type codes, {n_names} labels; "
                   f"decoding {fmt.field_count} fields")

        self.formats[fmt.type_id] = fmt
        return fmt

    def lookup(self, type_id: int) -> LogFormat | None:
        return self.formats.get(type_id)

    def by_name(self, name: str) -> LogFormat | None:
        name = trim_name(name)
        for f in self.formats.values():
            if f.name == name:
                return f
        return None

    def __contains__(self, type_id: object) -> bool:
        return type_id in self.formats

    def __len__(self) -> int:
        return len(self.formats)

    def __iter__(self) -> Iterator[LogFormat]:
        return iter(self.formats.values())
