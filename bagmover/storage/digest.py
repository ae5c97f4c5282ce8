"""Streaming file writer with a running digest and chained manifest output."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO

log = logging.getLogger(__name__)

DEFAULT_ALGORITHM = 'md5'
ENCODING = 'utf-8'


class DigestAlgorithmError(ValueError):
    """The configured digest algorithm is not available."""


def new_digest(algorithm: str):
    """Return a fresh hashlib object for *algorithm*.

    Raises:
        DigestAlgorithmError: hashlib does not provide the algorithm.
    """
    try:
        return hashlib.new(algorithm)
    except (ValueError, TypeError) as exc:
        raise DigestAlgorithmError(f'no such digest algorithm: {algorithm!r}') from exc


class DigestStream:
    """Write bytes to a destination while computing a running digest.

    When a *tail* stream is given, closing this stream writes one
    ``<hexdigest> <relative_path>`` line to it. The tail is shared and is
    never closed here.

    Usage::

        with DigestStream(bag / 'manifest-md5.txt', 'manifest-md5.txt') as manifest:
            with DigestStream(bag / 'data' / 'x', 'data/x', tail=manifest) as out:
                out.write(b'payload')
    """

    def __init__(
        self,
        destination: str | Path | BinaryIO,
        relative_path: str | None = None,
        tail: DigestStream | None = None,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        self._hasher = new_digest(algorithm)
        if isinstance(destination, (str, Path)):
            path = Path(destination)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(path, 'wb')  # noqa: SIM115
            label = path.name
        else:
            self._file = destination
            label = getattr(destination, 'name', '<stream>')
        self.relative_path = relative_path if relative_path is not None else str(label)
        self.tail = tail
        self.algorithm = algorithm
        self._bytes_written: int = 0
        self._closed = False
        log.debug('Opened digest stream %s (%s)', self.relative_path, algorithm)

    def __enter__(self) -> DigestStream:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError(f'write to closed DigestStream {self.relative_path}')
        if not data:
            return 0
        self._file.write(data)
        self._hasher.update(data)
        self._bytes_written += len(data)
        return len(data)

    def write_line(self, line: str) -> None:
        self.write((line + '\n').encode(ENCODING))

    def write_property(self, key: str, value: str) -> None:
        self.write_line(f'{key} {value}')

    def writable(self) -> bool:
        return not self._closed

    def flush(self) -> None:
        if not self._closed:
            self._file.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._file.flush()
        self._file.close()
        log.debug('Closed %s (%d bytes, %s %s)', self.relative_path, self._bytes_written,
                  self.algorithm, self.hexdigest())
        if self.tail is not None:
            self.tail.write_property(self.hexdigest(), self.relative_path)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()


def file_digest(path: str | Path, algorithm: str = DEFAULT_ALGORITHM, chunk_size: int = 1 << 20) -> str:
    """Re-read *path* from disk and return its hex digest."""
    h = new_digest(algorithm)
    with open(path, 'rb') as f:
        while True:
            block = f.read(chunk_size)
            if not block:
                break
            h.update(block)
    return h.hexdigest()
