"""Content source contract: the repository objects a migration reads from."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterable, Protocol

from bagmover.tree.manifest import NodeKind


@dataclass
class MetadataField:
    schema: str
    element: str
    value: str
    qualifier: str | None = None
    language: str | None = None


@dataclass
class Bitstream:
    sequence_id: int
    name: str | None = None
    source: str | None = None
    description: str | None = None
    opener: Callable[[], BinaryIO] | None = field(default=None, repr=False)

    def open(self) -> BinaryIO:
        if self.opener is None:
            raise OSError(f'bitstream {self.sequence_id} has no content')
        return self.opener()


@dataclass
class Bundle:
    name: str
    bitstreams: list[Bitstream] = field(default_factory=list)
    primary_sequence: int | None = None


@dataclass
class ContentNode:
    identifier: str
    kind: NodeKind
    # container fields, e.g. name / short_description
    fields: dict[str, str] = field(default_factory=dict)
    # item descriptive metadata
    metadata: list[MetadataField] = field(default_factory=list)
    logo: Bitstream | None = None
    bundles: list[Bundle] = field(default_factory=list)
    owner: str | None = None
    linked: list[str] = field(default_factory=list)
    withdrawn: bool = False


class ContentSource(Protocol):
    """Hierarchy provider consumed by the manifest builder and packager."""

    def resolve(self, identifier: str) -> ContentNode | None: ...

    def top_level(self) -> Iterable[ContentNode]: ...

    def containers(self, node: ContentNode) -> Iterable[ContentNode]: ...

    def leaves(self, node: ContentNode) -> Iterable[ContentNode]: ...

    def parent(self, node: ContentNode) -> ContentNode | None: ...
