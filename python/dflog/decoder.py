"""Decoding of fixed-width data record bodies."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

from .diagnostics import Diagnostic, DiagnosticKind, report
from .schema import FieldType, LogFormat, unpack_str

logger = logging.getLogger(__name__)

FieldValue = Union[int, float, str, None]

TIMESTAMP_FIELD = "TimeUS"

# One precompiled little-endian unpacker per field type
_UNPACKERS = {t: struct.Struct("<" + t.struct_fmt) for t in FieldType}


def _frozen(d: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(d))


@dataclass(frozen=True, eq=False)
class LogRecord:
    """One decoded data record.

    ``fields`` maps field name to value in declaration order; ``types`` holds
    the FieldType tag for each value (None where the type code was not
    recognised and the value is absent).
    """

    type_name: str
    fields: Mapping[str, FieldValue] = field(default_factory=dict)
    types: Mapping[str, FieldType | None] = field(default_factory=dict)
    timestamp: int | None = None
    type_id: int | None = None
    offset: int = 0

    def __post_init__(self):
        object.__setattr__(self, "fields", _frozen(self.fields))
        object.__setattr__(self, "types", _frozen(self.types))

    def __getitem__(self, name: str) -> FieldValue:
        return self.fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


def decode_record(fmt: LogFormat, body: bytes, offset: int = 0,
                  diagnostics: list[Diagnostic] | None = None) -> LogRecord:
    """Decode a record body (everything after the 3-byte header).

    Type codes and labels are walked in lockstep, so only the shorter of the
    two is decoded.  An unrecognised type code yields None and consumes no
    bytes, which shifts every later field of the record.  If the body runs
    out, decoding stops and the fields read so far are returned.
    """
    fields: dict[str, FieldValue] = {}
    types: dict[str, FieldType | None] = {}
    timestamp: int | None = None
    pos = 0

    for code, name in zip(fmt.format, fmt.field_names):
        ftype = FieldType.from_code(code)
        if ftype is None:
            logger.debug("%s.%s: unknown type code %r at offset %d",
                         fmt.name, name, code, offset)
            report(diagnostics, offset, DiagnosticKind.UNKNOWN_FIELD_TYPE,
                   f"{fmt.name}.{name}: unknown type code {code!r}")
            fields[name] = None
            types[name] = None
            continue

        unpacker = _UNPACKERS[ftype]
        if pos + unpacker.size > len(body):
            logger.debug("%s truncated at field %s (offset %d)",
                         fmt.name, name, offset)
            report(diagnostics, offset, DiagnosticKind.TRUNCATED_RECORD,
                   f"{fmt.name}: body ended before field {name}")
            break

        value = unpacker.unpack_from(body, pos)[0]
        pos += unpacker.size
        if ftype.is_text:
            value = unpack_str(value)

        fields[name] = value
        types[name] = ftype
        if name == TIMESTAMP_FIELD and isinstance(value, int):
            timestamp = value

    return LogRecord(
        type_name=fmt.name,
        fields=fields,
        types=types,
        timestamp=timestamp,
        type_id=fmt.type_id,
        offset=offset,
    )
