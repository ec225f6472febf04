from __future__ import annotations

import io
import logging
import mmap
import os
from pathlib import Path
from typing import BinaryIO, Optional, Union

LOGGER = logging.getLogger(__name__)

ModelSource = Union[str, "os.PathLike[str]", int, BinaryIO]
ModelBuffer = Union[bytes, bytearray, memoryview, mmap.mmap]


class MappedBytes:
    """Read-only view over model bytes; closes the memory map on exit."""

    def __init__(self, buffer: ModelBuffer) -> None:
        self.buffer = buffer

    @classmethod
    def from_descriptor(cls, fd: int) -> "MappedBytes":
        return cls(mmap.mmap(fd, 0, access=mmap.ACCESS_READ))

    def close(self) -> None:
        if isinstance(self.buffer, mmap.mmap):
            self.buffer.close()

    def __enter__(self) -> "MappedBytes":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def describe_source(source: ModelSource) -> str:
    if isinstance(source, int):
        return f"descriptor {source}"
    if isinstance(source, (str, os.PathLike)):
        return str(source)
    return str(getattr(source, "name", None) or repr(source))


def open_byte_source(source: ModelSource) -> Optional[MappedBytes]:
    """
    Map ``source`` into memory for reading.

    Accepts a filesystem path, an open file descriptor or a binary file
    object. Returns ``None`` when the bytes cannot be obtained; the caller's
    descriptor or file object is never closed here.
    """
    try:
        if isinstance(source, int):
            return MappedBytes.from_descriptor(source)
        if isinstance(source, (str, os.PathLike)):
            with Path(source).open("rb") as handle:
                return MappedBytes.from_descriptor(handle.fileno())
        try:
            fd = source.fileno()
        except (AttributeError, io.UnsupportedOperation):
            return MappedBytes(source.read())
        return MappedBytes.from_descriptor(fd)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        LOGGER.error("Unable to read model bytes from %s: %s", describe_source(source), exc)
        return None
