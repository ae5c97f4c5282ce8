"""Submission package (SIP) construction for communities, collections and items.

Every package is a zipped bag whose ``data/object`` properties file names
the object type, its handle and its owner. Descriptive metadata goes into
``data/metadata.xml``; item bitstreams go under ``data/<bundle>/<seq>``
with a ``<seq>-metadata.xml`` companion.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from bagmover.bag.filler import BagFiller
from bagmover.config import Config
from bagmover.content.source import Bitstream, ContentNode, ContentSource, MetadataField
from bagmover.storage.markup import MarkupValue, MarkupWriter
from bagmover.tree.manifest import NodeKind

log = logging.getLogger(__name__)

OBJECT_FILE = 'data/object'
METADATA_FILE = 'metadata.xml'
METADATA_STANZA = 'metadata'

# bag and object property names
BAG_TYPE = 'bagType'
OBJECT_TYPE = 'objectType'
OBJECT_ID = 'objectId'
OWNER_ID = 'ownerId'
OTHER_IDS = 'otherIds'
WITHDRAWN = 'withdrawn'


def package_basename(identifier: str) -> str:
    return identifier.replace('/', '-')


def package_path(scratch_dir: str | Path, identifier: str) -> Path:
    return Path(scratch_dir) / f'{package_basename(identifier)}.zip'


def write_metadata(fields: list[MetadataField], out: BinaryIO) -> None:
    """Write item metadata as one value per field, then close *out*."""
    writer = MarkupWriter(out)
    writer.start_stanza(METADATA_STANZA)
    for md in fields:
        value = MarkupValue(text=md.value)
        value.add_attr('schema', md.schema)
        value.add_attr('element', md.element)
        value.add_attr('qualifier', md.qualifier)
        value.add_attr('language', md.language)
        writer.write_value(value)
    writer.end_stanza()
    writer.close()


def read_metadata(values: list[MarkupValue]) -> list[MetadataField]:
    """Inverse of :func:`write_metadata` for values read back from a bag."""
    return [
        MetadataField(
            schema=v.attrs.get('schema', ''),
            element=v.attrs.get('element', ''),
            value=v.text,
            qualifier=v.attrs.get('qualifier'),
            language=v.attrs.get('language'),
        )
        for v in values
    ]


class PackageMaker:
    """Builds one zip package per repository object in a scratch directory."""

    def __init__(self, scratch_dir: str | Path, source: ContentSource, config: Config) -> None:
        self.scratch_dir = Path(scratch_dir)
        self.source = source
        self.config = config

    def package_path(self, identifier: str) -> Path:
        return package_path(self.scratch_dir, identifier)

    def make(self, node: ContentNode) -> Path:
        if node.kind is NodeKind.COMMUNITY:
            return self._make_container(node, self.config.community_fields)
        if node.kind is NodeKind.COLLECTION:
            return self._make_container(node, self.config.collection_fields)
        return self._make_item(node)

    def _new_filler(self, node: ContentNode) -> BagFiller:
        filler = BagFiller(
            self.scratch_dir / package_basename(node.identifier),
            self.config.digest_algorithm,
            chunk_size=self.config.read_chunk_size,
        )
        filler.metadata(BAG_TYPE, 'SIP')
        filler.property(OBJECT_FILE, OBJECT_TYPE, node.kind.label)
        filler.property(OBJECT_FILE, OBJECT_ID, node.identifier)
        return filler

    def _make_container(self, node: ContentNode, fields: list[str]) -> Path:
        filler = self._new_filler(node)
        parent = self.source.parent(node)
        if parent is not None:
            filler.property(OBJECT_FILE, OWNER_ID, parent.identifier)

        writer = MarkupWriter(filler.payload_stream(METADATA_FILE))
        writer.start_stanza(METADATA_STANZA)
        for name in fields:
            writer.write_value(name, node.fields.get(name))
        writer.end_stanza()
        writer.close()

        if node.logo is not None:
            filler.payload('logo', node.logo.open())
        return filler.to_package()

    def _make_item(self, item: ContentNode) -> Path:
        filler = self._new_filler(item)
        if item.owner is not None:
            filler.property(OBJECT_FILE, OWNER_ID, item.owner)
        if item.linked:
            filler.property(OBJECT_FILE, OTHER_IDS, ','.join(item.linked))
        if item.withdrawn:
            filler.property(OBJECT_FILE, WITHDRAWN, 'true')

        write_metadata(item.metadata, filler.payload_stream(METADATA_FILE))

        for bundle in item.bundles:
            if bundle.name in self.config.skip_bundles:
                log.debug('Skipping bundle %s of %s', bundle.name, item.identifier)
                continue
            for bs in bundle.bitstreams:
                rel_path = f'{bundle.name}/{bs.sequence_id}'
                self._write_bitstream_metadata(
                    filler, rel_path, bs, primary=bs.sequence_id == bundle.primary_sequence
                )
                filler.payload(rel_path, bs.open())
        return filler.to_package()

    @staticmethod
    def _write_bitstream_metadata(filler: BagFiller, rel_path: str, bs: Bitstream, primary: bool) -> None:
        writer = MarkupWriter(filler.payload_stream(f'{rel_path}-metadata.xml'))
        writer.start_stanza(METADATA_STANZA)
        writer.write_value('name', bs.name)
        writer.write_value('source', bs.source)
        writer.write_value('description', bs.description)
        writer.write_value('sequence_id', str(bs.sequence_id))
        if primary:
            writer.write_value('bundle_primary', 'true')
        writer.end_stanza()
        writer.close()
