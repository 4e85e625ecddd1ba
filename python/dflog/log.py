"""High-level entry points: parse a DataFlash log file into a queryable store.

parse()         - decode a whole file (memory-mapped) into a DataFlashLog.
parse_bytes()   - same for an in-memory buffer.
iter_messages() - lazy variant, yields records while the file is mapped.
"""

from __future__ import annotations

import logging
import mmap
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .decoder import LogRecord
from .diagnostics import Diagnostic
from .scanner import Buffer, iter_records, scan
from .schema import FormatRegistry
from .store import MessageStore

logger = logging.getLogger(__name__)


@contextmanager
def _mapped(path: str | Path) -> Iterator[Buffer]:
    """Map a file read-only for the duration of the block."""
    with open(path, "rb") as f:
        if os.fstat(f.fileno()).st_size == 0:
            # mmap refuses empty files
            yield b""
            return
        mm = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
        try:
            yield mm
        finally:
            mm.close()


class DataFlashLog:
    """Result of decoding one log: formats, records and optional diagnostics."""

    def __init__(self, path: str | Path | None = None,
                 collect_diagnostics: bool = False):
        self.path = Path(path) if path is not None else None
        self.formats = FormatRegistry()
        self.store = MessageStore()
        self.diagnostics: list[Diagnostic] = []
        self._collect = collect_diagnostics

    def load(self, data: Buffer, cancel: threading.Event | None = None) -> int:
        """Decode *data* into this log.  Returns the number of records added."""
        count = scan(data, self.formats, self.store,
                     self.diagnostics if self._collect else None, cancel)
        logger.info("decoded %d records of %d types (%d formats) from %s",
                    count, len(self.store.type_names()), len(self.formats),
                    self.path or "buffer")
        return count

    def all_messages(self) -> list[LogRecord]:
        return self.store.all()

    def messages_by_type(self, name: str) -> list[LogRecord]:
        return self.store.by_type(name)

    def message_types(self) -> list[str]:
        return self.store.type_names()

    def __len__(self) -> int:
        return len(self.store)

    def __repr__(self) -> str:
        return (f"DataFlashLog(path={str(self.path)!r}, "
                f"records={len(self.store)}, types={len(self.store.type_names())})")


def parse(path: str | Path, *, diagnostics: bool = False,
          cancel: threading.Event | None = None) -> DataFlashLog:
    """Decode the log at *path*.

    Raises OSError only if the file cannot be opened or read; corrupt or
    truncated content yields whatever could be decoded.
    """
    log = DataFlashLog(path, collect_diagnostics=diagnostics)
    with _mapped(path) as data:
        log.load(data, cancel)
    return log


def parse_bytes(data: bytes | bytearray, *, diagnostics: bool = False,
                cancel: threading.Event | None = None) -> DataFlashLog:
    """Decode a log already held in memory."""
    log = DataFlashLog(collect_diagnostics=diagnostics)
    log.load(data, cancel)
    return log


def iter_messages(path: str | Path, *,
                  diagnostics: list[Diagnostic] | None = None,
                  cancel: threading.Event | None = None) -> Iterator[LogRecord]:
    """Lazily yield records from the log at *path*.

    The file stays mapped until the generator is exhausted or closed.  The
    sequence is finite and cannot be restarted; call again to re-read.
    """
    registry = FormatRegistry()
    with _mapped(path) as data:
        yield from iter_records(data, registry, diagnostics, cancel)
