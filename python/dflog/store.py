"""In-memory store of decoded records with per-type indexing."""

from __future__ import annotations

from typing import Iterator

import numpy as np

from .decoder import LogRecord
from .schema import FieldType, trim_name

# numpy dtype per field type; Q is decoded signed so maps to int64
_TYPE_DTYPE = {
    FieldType.INT8: np.int8,
    FieldType.UINT8: np.uint8,
    FieldType.INT16: np.int16,
    FieldType.UINT16: np.uint16,
    FieldType.INT32: np.int32,
    FieldType.UINT32: np.uint32,
    FieldType.FLOAT32: np.float32,
    FieldType.FLOAT64: np.float64,
    FieldType.CHAR4: object,
    FieldType.CHAR16: object,
    FieldType.CHAR64: object,
    FieldType.INT64: np.int64,
    FieldType.UINT64: np.int64,
}


class MessageStore:
    """Append-only collection of LogRecords, in arrival order and by type name."""

    def __init__(self):
        self._records: list[LogRecord] = []
        self._by_type: dict[str, list[LogRecord]] = {}

    def append(self, record: LogRecord) -> None:
        self._records.append(record)
        self._by_type.setdefault(record.type_name, []).append(record)

    def all(self) -> list[LogRecord]:
        return list(self._records)

    def by_type(self, name: str) -> list[LogRecord]:
        """Records of one type, or an empty list if the type never appeared."""
        return list(self._by_type.get(trim_name(name), ()))

    def type_names(self) -> list[str]:
        return sorted(self._by_type)

    def count(self, name: str) -> int:
        return len(self._by_type.get(trim_name(name), ()))

    def time_range(self) -> tuple[int, int] | None:
        """Return (earliest, latest) TimeUS over all records, or None."""
        stamps = [r.timestamp for r in self._records if r.timestamp is not None]
        if not stamps:
            return None
        return min(stamps), max(stamps)

    def series(self, name: str, field_name: str) -> tuple[np.ndarray, np.ndarray]:
        """Return (timestamps, values) for one field of one record type.

        Only records carrying both a timestamp and a value for the field
        contribute.  Timestamps are int64 microseconds, since TimeUS may be
        declared with a signed code; the value dtype follows the field's
        type code.
        """
        ts: list[int] = []
        values: list = []
        tags: set[FieldType] = set()
        for r in self._by_type.get(trim_name(name), ()):
            if r.timestamp is None or r.fields.get(field_name) is None:
                continue
            ts.append(r.timestamp)
            values.append(r.fields[field_name])
            tags.add(r.types[field_name])

        if len(tags) == 1:
            dtype = _TYPE_DTYPE[tags.pop()]
        elif not tags:
            dtype = np.float64
        else:
            dtype = None  # mixed definitions: let numpy pick
        return np.asarray(ts, dtype=np.int64), np.asarray(values, dtype=dtype)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(self._records)
