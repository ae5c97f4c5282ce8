"""Content source backed by a JSON description of a repository.

Layout::

    {
      "communities": [
        {
          "handle": "123456789/1",
          "fields": {"name": "Research", "short_description": "..."},
          "logo": {"path": "logo.png"},
          "communities": [...],
          "collections": [
            {
              "handle": "123456789/2",
              "fields": {"name": "Theses"},
              "items": [
                {
                  "handle": "123456789/3",
                  "withdrawn": false,
                  "linked": ["123456789/9"],
                  "metadata": [{"schema": "dc", "element": "title", "value": "..."}],
                  "bundles": [
                    {"name": "ORIGINAL", "primary": 1,
                     "bitstreams": [{"sequence_id": 1, "name": "a.pdf", "path": "files/a.pdf"}]}
                  ]
                }
              ]
            }
          ]
        }
      ]
    }

Bitstream content is either ``"path"`` (relative to the description file)
or inline ``"content"`` text.
"""

from __future__ import annotations

import io
import json
import logging
from functools import partial
from pathlib import Path
from typing import Any, Iterable

from bagmover.content.source import Bitstream, Bundle, ContentNode, MetadataField
from bagmover.tree.manifest import NodeKind

log = logging.getLogger(__name__)


class ContentDescriptionError(ValueError):
    pass


def _open_path(path: Path):
    return open(path, 'rb')  # noqa: SIM115


class StaticContentSource:
    """In-memory :class:`~bagmover.content.source.ContentSource`."""

    def __init__(self, description: dict[str, Any], base_dir: str | Path = '.') -> None:
        self._base_dir = Path(base_dir)
        self._nodes: dict[str, ContentNode] = {}
        self._containers: dict[str, list[str]] = {}
        self._leaves: dict[str, list[str]] = {}
        self._parents: dict[str, str | None] = {}
        self._top: list[str] = []
        for comm in description.get('communities', []):
            self._top.append(self._add_community(comm, None))
        log.debug('Loaded %d content nodes (%d top-level)', len(self._nodes), len(self._top))

    @classmethod
    def from_file(cls, path: str | Path) -> StaticContentSource:
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except json.JSONDecodeError as exc:
            raise ContentDescriptionError(f'{path}: {exc}') from exc
        return cls(data, base_dir=path.parent)

    # ------------------------------------------------------------------
    # ContentSource
    # ------------------------------------------------------------------

    def resolve(self, identifier: str) -> ContentNode | None:
        return self._nodes.get(identifier)

    def top_level(self) -> Iterable[ContentNode]:
        return [self._nodes[h] for h in self._top]

    def containers(self, node: ContentNode) -> Iterable[ContentNode]:
        return [self._nodes[h] for h in self._containers.get(node.identifier, [])]

    def leaves(self, node: ContentNode) -> Iterable[ContentNode]:
        return [self._nodes[h] for h in self._leaves.get(node.identifier, [])]

    def parent(self, node: ContentNode) -> ContentNode | None:
        handle = self._parents.get(node.identifier)
        return self._nodes[handle] if handle is not None else None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _register(self, node: ContentNode, parent: str | None) -> str:
        if node.identifier in self._nodes:
            raise ContentDescriptionError(f'duplicate handle {node.identifier}')
        self._nodes[node.identifier] = node
        self._parents[node.identifier] = parent
        if parent is not None:
            bucket = self._leaves if node.kind.is_leaf else self._containers
            bucket.setdefault(parent, []).append(node.identifier)
        return node.identifier

    def _add_community(self, data: dict[str, Any], parent: str | None) -> str:
        node = ContentNode(
            identifier=_handle(data),
            kind=NodeKind.COMMUNITY,
            fields=dict(data.get('fields', {})),
            logo=self._bitstream(data['logo'], 0) if data.get('logo') else None,
        )
        handle = self._register(node, parent)
        for sub in data.get('communities', []):
            self._add_community(sub, handle)
        for coll in data.get('collections', []):
            self._add_collection(coll, handle)
        return handle

    def _add_collection(self, data: dict[str, Any], parent: str) -> str:
        node = ContentNode(
            identifier=_handle(data),
            kind=NodeKind.COLLECTION,
            fields=dict(data.get('fields', {})),
            logo=self._bitstream(data['logo'], 0) if data.get('logo') else None,
        )
        handle = self._register(node, parent)
        for item in data.get('items', []):
            self._add_item(item, handle)
        return handle

    def _add_item(self, data: dict[str, Any], owner: str) -> str:
        node = ContentNode(
            identifier=_handle(data),
            kind=NodeKind.ITEM,
            metadata=[
                MetadataField(
                    schema=md['schema'],
                    element=md['element'],
                    value=md['value'],
                    qualifier=md.get('qualifier'),
                    language=md.get('language'),
                )
                for md in data.get('metadata', [])
            ],
            bundles=[
                Bundle(
                    name=b['name'],
                    bitstreams=[self._bitstream(bs, idx) for idx, bs in enumerate(b.get('bitstreams', []), 1)],
                    primary_sequence=b.get('primary'),
                )
                for b in data.get('bundles', [])
            ],
            owner=owner,
            linked=[handle for handle in data.get('linked', []) if handle != owner],
            withdrawn=bool(data.get('withdrawn', False)),
        )
        return self._register(node, owner)

    def _bitstream(self, data: dict[str, Any], default_seq: int) -> Bitstream:
        if 'path' in data:
            opener = partial(_open_path, self._base_dir / data['path'])
        elif 'content' in data:
            opener = partial(io.BytesIO, data['content'].encode('utf-8'))
        else:
            opener = None
        return Bitstream(
            sequence_id=int(data.get('sequence_id', default_seq)),
            name=data.get('name'),
            source=data.get('source'),
            description=data.get('description'),
            opener=opener,
        )


def _handle(data: dict[str, Any]) -> str:
    try:
        handle = data['handle']
    except KeyError:
        raise ContentDescriptionError(f'object without handle: {data!r}') from None
    if not handle or any(ch.isspace() for ch in handle):
        raise ContentDescriptionError(f'invalid handle {handle!r}')
    return handle
