"""Read properties, metadata and checksums back out of a bag."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from bagmover.bag.filler import BAG_INFO_FILENAME, DATA_DIR
from bagmover.storage.digest import ENCODING, file_digest
from bagmover.storage.markup import MarkupReader, MarkupValue

log = logging.getLogger(__name__)


def extract_package(package: str | Path, dest_dir: str | Path) -> Path:
    """Unzip *package* into *dest_dir* and return the bag directory."""
    dest_dir = Path(dest_dir)
    with zipfile.ZipFile(package) as zf:
        names = zf.namelist()
        for name in names:
            if name.startswith('/') or '..' in Path(name).parts:
                raise ValueError(f'unsafe path in package {package}: {name}')
        zf.extractall(dest_dir)
    top = {name.split('/', 1)[0] for name in names}
    if len(top) != 1:
        raise ValueError(f'{package}: expected a single bag directory, found {sorted(top)}')
    return dest_dir / top.pop()


class BagReader:
    def __init__(self, bag_dir: str | Path) -> None:
        self.bag_dir = Path(bag_dir)
        manifests = sorted(self.bag_dir.glob('manifest-*.txt'))
        if not manifests:
            raise FileNotFoundError(f'no payload manifest in {self.bag_dir}')
        self.algorithm = manifests[0].name[len('manifest-'):-len('.txt')]

    def properties(self, rel_path: str = f'{DATA_DIR}/object') -> dict[str, str]:
        """Parse a ``key value`` properties file."""
        props: dict[str, str] = {}
        for line in (self.bag_dir / rel_path).read_text(encoding=ENCODING).splitlines():
            if not line:
                continue
            key, _, value = line.partition(' ')
            props[key] = value
        return props

    def info(self) -> dict[str, str]:
        info: dict[str, str] = {}
        for line in (self.bag_dir / BAG_INFO_FILENAME).read_text(encoding=ENCODING).splitlines():
            key, sep, value = line.partition(':')
            if sep:
                info[key.strip()] = value.strip()
        return info

    def metadata(self, rel_path: str, stanza: str = 'metadata') -> list[MarkupValue]:
        """Return the values of *stanza* in the XML payload file at *rel_path*."""
        with MarkupReader(self.bag_dir / rel_path) as reader:
            if not reader.find_stanza(stanza):
                return []
            return list(reader.values())

    def manifest(self, tag: bool = False) -> dict[str, str]:
        """Map relative path to recorded digest."""
        prefix = 'tagmanifest' if tag else 'manifest'
        path = self.bag_dir / f'{prefix}-{self.algorithm}.txt'
        entries: dict[str, str] = {}
        for line in path.read_text(encoding=ENCODING).splitlines():
            if line:
                digest, _, rel = line.partition(' ')
                entries[rel] = digest
        return entries

    def verify(self) -> list[str]:
        """Recompute every recorded digest. Returns the paths that do not match.

        Payload files present on disk but missing from the manifest are
        reported too.
        """
        bad: list[str] = []
        payload = self.manifest()
        for rel, recorded in [*payload.items(), *self.manifest(tag=True).items()]:
            path = self.bag_dir / rel
            if not path.is_file():
                log.error('Missing file %s in %s', rel, self.bag_dir)
                bad.append(rel)
                continue
            actual = file_digest(path, self.algorithm)
            if actual != recorded:
                log.error('Checksum mismatch for %s: recorded=%s actual=%s', rel, recorded, actual)
                bad.append(rel)
        for path in sorted((self.bag_dir / DATA_DIR).rglob('*')):
            rel = path.relative_to(self.bag_dir).as_posix()
            if path.is_file() and rel not in payload:
                log.error('Unlisted payload file %s in %s', rel, self.bag_dir)
                bad.append(rel)
        return bad
