"""Flat, depth-tagged export manifest of a content forest.

Each line of the persisted form is ``<depth> <kind> <identifier>``. Entries
are in pre-order, so the hierarchy can be recovered on a single forward
pass with a stack of ancestor identifiers (see :meth:`TreeManifest.replay`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Iterator

log = logging.getLogger(__name__)

MANIFEST_ENCODING = 'utf-8'


class NodeKind(IntEnum):
    # Values are the repository's object type constants, used on the wire.
    ITEM = 2
    COLLECTION = 3
    COMMUNITY = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def is_leaf(self) -> bool:
        return self is NodeKind.ITEM


class ManifestFormatError(ValueError):
    pass


@dataclass(frozen=True)
class ManifestEntry:
    depth: int
    kind: NodeKind
    identifier: str

    def to_line(self) -> str:
        return f'{self.depth} {int(self.kind)} {self.identifier}\n'

    @classmethod
    def from_line(cls, line: str, lineno: int = 0) -> ManifestEntry:
        fields = line.split()
        if len(fields) != 3:
            raise ManifestFormatError(f'line {lineno}: expected 3 fields, got {len(fields)}: {line!r}')
        depth_s, kind_s, identifier = fields
        if not depth_s.isdecimal() or not kind_s.isdecimal():
            raise ManifestFormatError(f'line {lineno}: depth and kind must be non-negative integers: {line!r}')
        try:
            kind = NodeKind(int(kind_s))
        except ValueError as exc:
            raise ManifestFormatError(f'line {lineno}: unknown node kind {kind_s}') from exc
        return cls(int(depth_s), kind, identifier)


@dataclass
class TreeManifest:
    entries: list[ManifestEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(self.entries)

    def is_empty(self) -> bool:
        return not self.entries

    def add(self, identifier: str, depth: int, kind: NodeKind) -> None:
        self.entries.append(ManifestEntry(depth, kind, identifier))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def dumps(self) -> str:
        return ''.join(entry.to_line() for entry in self.entries)

    @classmethod
    def loads(cls, text: str) -> TreeManifest:
        """Parse manifest text. Structure is not validated here."""
        manifest = cls()
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            manifest.entries.append(ManifestEntry.from_line(line, lineno))
        return manifest

    def write(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding=MANIFEST_ENCODING, newline='\n') as f:
            for entry in self.entries:
                f.write(entry.to_line())
        log.info('Wrote manifest with %d entries to %s', len(self.entries), path)
        return path

    @classmethod
    def read(cls, path: str | Path) -> TreeManifest:
        with open(path, encoding=MANIFEST_ENCODING) as f:
            manifest = cls.loads(f.read())
        log.info('Loaded manifest with %d entries from %s', len(manifest), path)
        return manifest

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check the depth-adjacency invariants.

        Raises:
            ManifestFormatError: first entry not at depth 0, a descent of
                more than one level, or a leaf followed by a deeper entry.
        """
        prev: ManifestEntry | None = None
        for idx, entry in enumerate(self.entries):
            _check_step(prev, entry, idx)
            prev = entry

    def replay(self, strict: bool = True) -> Iterator[tuple[ManifestEntry, str | None]]:
        """Yield ``(entry, parent_identifier)`` in manifest order.

        The parent of a root entry is None. The ancestor stack is adjusted
        only after the consumer has handled an entry, so the caller acts on
        each node before its children are reached.

        With *strict* (the default), invariant violations raise
        :class:`ManifestFormatError` as they are reached. Without it, a
        malformed manifest replays with wrong parents and no error.
        """
        parents: list[str | None] = [None]
        entries = self.entries
        for idx, entry in enumerate(entries):
            if strict:
                _check_step(entries[idx - 1] if idx else None, entry, idx)
            yield entry, parents[-1]
            if idx == len(entries) - 1:
                break
            diff = entry.depth - entries[idx + 1].depth
            if diff < 0:
                # next entry is a child of this one
                parents.append(entry.identifier)
            elif diff > 0:
                # the sentinel is never popped, even for a malformed manifest
                for _ in range(min(diff, len(parents) - 1)):
                    parents.pop()

    def parents(self, strict: bool = True) -> dict[str, str | None]:
        """Map each identifier to its parent identifier (None for roots)."""
        return {entry.identifier: parent for entry, parent in self.replay(strict=strict)}


def _check_step(prev: ManifestEntry | None, entry: ManifestEntry, idx: int) -> None:
    if prev is None:
        if entry.depth != 0:
            raise ManifestFormatError(f'entry {idx} ({entry.identifier}): first entry must be at depth 0')
        return
    if entry.depth > prev.depth + 1:
        raise ManifestFormatError(
            f'entry {idx} ({entry.identifier}): depth jumps from {prev.depth} to {entry.depth}'
        )
    if entry.depth > prev.depth and prev.kind.is_leaf:
        raise ManifestFormatError(
            f'entry {idx} ({entry.identifier}): {prev.kind.label} {prev.identifier} cannot have children'
        )
