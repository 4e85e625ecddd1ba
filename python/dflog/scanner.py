"""Sentinel-driven scanning of a DataFlash byte stream.

Every record on the wire looks like:
  [0xA3][0x95][type id][body]

FORMAT records (type id 0x80) carry a fixed 86-byte body describing another
record type.  Data records carry ``record_length - 3`` bytes laid out as
their FORMAT declared.  There is no file header, no length prefix and no
checksum, so the scanner finds records purely by searching for the sentinel.
"""

from __future__ import annotations

import logging
import mmap
import threading
from typing import Iterator, Union

from .decoder import LogRecord, decode_record
from .diagnostics import Diagnostic, DiagnosticKind, report
from .schema import (
    FORMAT_BODY_SIZE, FORMAT_TYPE_ID, HEADER_SIZE, SENTINEL, FormatRegistry,
)
from .store import MessageStore

logger = logging.getLogger(__name__)

Buffer = Union[bytes, bytearray, mmap.mmap]


class ParseCancelled(Exception):
    """Raised when a caller-supplied cancel event is set mid-scan."""

    def __init__(self, offset: int):
        super().__init__(f"parse cancelled at offset {offset}")
        self.offset = offset


def iter_records(data: Buffer, registry: FormatRegistry,
                 diagnostics: list[Diagnostic] | None = None,
                 cancel: threading.Event | None = None) -> Iterator[LogRecord]:
    """Yield decoded data records from *data* in stream order.

    FORMAT records update *registry* as they are met and are not yielded.
    Malformed content never raises: unknown type ids are skipped one header
    at a time, and a record cut short by the end of the buffer is decoded as
    far as it goes and ends the scan.
    """
    size = len(data)
    pos = 0

    while pos < size:
        if cancel is not None and cancel.is_set():
            raise ParseCancelled(pos)

        start = data.find(SENTINEL, pos)
        if start < 0:
            logger.debug("no sentinel in last %d bytes", size - pos)
            report(diagnostics, pos, DiagnosticKind.SKIPPED_BYTES,
                   f"{size - pos} trailing bytes without a record")
            break
        if start > pos:
            logger.debug("skipped %d bad bytes at offset %d", start - pos, pos)
            report(diagnostics, pos, DiagnosticKind.SKIPPED_BYTES,
                   f"skipped {start - pos} bytes")

        body_start = start + HEADER_SIZE
        if body_start > size:
            break
        type_id = data[start + 2]

        if type_id == FORMAT_TYPE_ID:
            end = body_start + FORMAT_BODY_SIZE
            if end > size:
                logger.debug("FORMAT record truncated at offset %d", start)
                report(diagnostics, start, DiagnosticKind.TRUNCATED_FORMAT,
                       f"FORMAT record needs {FORMAT_BODY_SIZE} bytes, "
                       f"{size - body_start} left")
                break
            registry.register_format(bytes(data[body_start:end]), start,
                                     diagnostics)
            pos = end
            continue

        fmt = registry.lookup(type_id)
        if fmt is None:
            # Record length is unknown, so resume right after the header
            logger.debug("unknown type id %d at offset %d", type_id, start)
            report(diagnostics, start, DiagnosticKind.UNKNOWN_TYPE,
                   f"type id {type_id} has no FORMAT")
            pos = body_start
            continue

        end = body_start + fmt.body_size
        yield decode_record(fmt, bytes(data[body_start:min(end, size)]),
                            start, diagnostics)
        if end > size:
            break
        pos = end


def scan(data: Buffer, registry: FormatRegistry, store: MessageStore,
         diagnostics: list[Diagnostic] | None = None,
         cancel: threading.Event | None = None) -> int:
    """Decode every record in *data* into *store*.  Returns the record count."""
    count = 0
    for record in iter_records(data, registry, diagnostics, cancel):
        store.append(record)
        count += 1
    return count
