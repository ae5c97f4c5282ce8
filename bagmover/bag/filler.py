"""Bag directory creation with chained payload and tag manifests.

Layout::

    <base_dir>/
        bagit.txt
        bag-info.txt
        manifest-<alg>.txt       one line per payload file
        tagmanifest-<alg>.txt    one line per tag file, including manifest-<alg>.txt
        data/...

Every payload file is written through a :class:`DigestStream` whose tail is
the payload manifest, and the payload manifest's tail is the tag manifest,
so no file is ever re-read to compute its checksum.
"""

from __future__ import annotations

import logging
import shutil
import zipfile
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from bagmover.storage.digest import DEFAULT_ALGORITHM, DigestStream, new_digest

log = logging.getLogger(__name__)

BAGIT_VERSION = '0.97'
BAGIT_FILENAME = 'bagit.txt'
BAG_INFO_FILENAME = 'bag-info.txt'
DATA_DIR = 'data'
DEFAULT_CHUNK_SIZE = 64 * 1024


def manifest_name(algorithm: str) -> str:
    return f'manifest-{algorithm}.txt'


def tagmanifest_name(algorithm: str) -> str:
    return f'tagmanifest-{algorithm}.txt'


def _clean_relpath(rel_path: str) -> str:
    parts = PurePosixPath(rel_path).parts
    if not parts or rel_path.startswith('/') or '..' in parts:
        raise ValueError(f'invalid bag path: {rel_path!r}')
    return '/'.join(parts)


class BagFiller:
    """Fill a bag directory and turn it into a zip package.

    Usage::

        filler = BagFiller(scratch / '123456789-1')
        filler.metadata('bagType', 'SIP')
        filler.property('data/object', 'objectType', 'community')
        with filler.payload_stream('metadata.xml') as out:
            out.write(b'...')
        package = filler.to_package()
    """

    def __init__(
        self,
        base_dir: str | Path,
        algorithm: str = DEFAULT_ALGORITHM,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        new_digest(algorithm)
        self.base_dir = Path(base_dir)
        self.algorithm = algorithm
        if chunk_size <= 0:
            raise ValueError(f'chunk size must be positive, got {chunk_size}')
        self.chunk_size = chunk_size
        if self.base_dir.exists():
            log.warning('Replacing existing bag directory %s', self.base_dir)
            shutil.rmtree(self.base_dir)
        (self.base_dir / DATA_DIR).mkdir(parents=True)
        self._tagmanifest = DigestStream(
            self.base_dir / tagmanifest_name(algorithm), tagmanifest_name(algorithm), algorithm=algorithm
        )
        self._manifest = DigestStream(
            self.base_dir / manifest_name(algorithm),
            manifest_name(algorithm),
            tail=self._tagmanifest,
            algorithm=algorithm,
        )
        self._payloads: list[DigestStream] = []
        self._properties: dict[str, list[tuple[str, str]]] = {}
        self._info: list[tuple[str, str]] = []
        self._package: Path | None = None
        log.debug('Created bag directory %s', self.base_dir)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def payload_stream(self, rel_path: str) -> DigestStream:
        """Open ``data/<rel_path>`` for writing. The caller closes it."""
        self._check_open()
        rel = f'{DATA_DIR}/{_clean_relpath(rel_path)}'
        stream = DigestStream(self.base_dir / rel, rel, tail=self._manifest, algorithm=self.algorithm)
        self._payloads.append(stream)
        return stream

    def payload(self, rel_path: str, source: BinaryIO) -> int:
        """Copy *source* into ``data/<rel_path>`` and close it. Returns bytes copied."""
        with source, self.payload_stream(rel_path) as out:
            while True:
                chunk = source.read(self.chunk_size)
                if not chunk:
                    break
                out.write(chunk)
            return out.bytes_written

    def property(self, rel_path: str, key: str, value: str) -> None:
        """Record a ``key value`` line for the properties file at *rel_path*.

        *rel_path* is relative to the bag root, e.g. ``data/object``.
        """
        self._check_open()
        self._properties.setdefault(_clean_relpath(rel_path), []).append((key, value))

    def metadata(self, key: str, value: str) -> None:
        """Record a ``bag-info.txt`` entry."""
        self._check_open()
        self._info.append((key, value))

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def to_package(self) -> Path:
        """Complete the bag and zip it to ``<base_dir>.zip``. Returns the zip path."""
        if self._package is not None:
            return self._package

        for rel, props in self._properties.items():
            with self._stream(rel) as out:
                for key, value in props:
                    out.write_property(key, value)

        for stream in self._payloads:
            if not stream.closed:
                log.warning('Payload %s left open; closing', stream.relative_path)
                stream.close()

        payload_bytes = sum(s.bytes_written for s in self._payloads)
        with self._stream(BAGIT_FILENAME) as out:
            out.write_line(f'BagIt-Version: {BAGIT_VERSION}')
            out.write_line('Tag-File-Character-Encoding: UTF-8')
        with self._stream(BAG_INFO_FILENAME) as out:
            for key, value in self._info:
                out.write_line(f'{key}: {value}')
            out.write_line(f'Bagging-Date: {datetime.now(UTC).date().isoformat()}')
            out.write_line(f'Payload-Oxum: {payload_bytes}.{len(self._payloads)}')

        self._manifest.close()
        self._tagmanifest.close()

        package = self.base_dir.parent / f'{self.base_dir.name}.zip'
        with zipfile.ZipFile(package, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(self.base_dir.rglob('*')):
                if path.is_file():
                    arcname = f'{self.base_dir.name}/{path.relative_to(self.base_dir).as_posix()}'
                    zf.write(path, arcname)
        self._package = package
        log.info('Packaged %s (%d payload files, %d bytes)', package, len(self._payloads), payload_bytes)
        return package

    def _stream(self, rel: str) -> DigestStream:
        # data/ files are payload; anything else is a tag file
        if rel.startswith(f'{DATA_DIR}/'):
            stream = DigestStream(self.base_dir / rel, rel, tail=self._manifest, algorithm=self.algorithm)
            self._payloads.append(stream)
            return stream
        return DigestStream(self.base_dir / rel, rel, tail=self._tagmanifest, algorithm=self.algorithm)

    def _check_open(self) -> None:
        if self._package is not None:
            raise ValueError(f'bag {self.base_dir} is already packaged')
