"""Build a :class:`TreeManifest` by walking a content source depth-first."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bagmover.tree.manifest import TreeManifest

if TYPE_CHECKING:
    from bagmover.content.source import ContentNode, ContentSource

log = logging.getLogger(__name__)


class ManifestBuildError(Exception):
    pass


class ManifestBuilder:
    """Appends nodes to a manifest in pre-order.

    A node's container children are visited before its leaf children, each
    one level deeper than the node itself.
    """

    def __init__(self, source: ContentSource, manifest: TreeManifest | None = None) -> None:
        self.source = source
        self.manifest = manifest if manifest is not None else TreeManifest()

    def add_parents(self, node: ContentNode) -> int:
        """Append the ancestor chain of *node*, root first.

        Returns the depth at which *node* itself belongs.
        """
        parents: list[ContentNode] = []
        parent = self.source.parent(node)
        while parent is not None:
            parents.append(parent)
            parent = self.source.parent(parent)
        depth = 0
        while parents:
            ancestor = parents.pop()
            self.manifest.add(ancestor.identifier, depth, ancestor.kind)
            depth += 1
        return depth

    def add_node(self, node: ContentNode, depth: int) -> None:
        self.manifest.add(node.identifier, depth, node.kind)
        if node.kind.is_leaf:
            return
        for child in self.source.containers(node):
            self.add_node(child, depth + 1)
        for leaf in self.source.leaves(node):
            self.manifest.add(leaf.identifier, depth + 1, leaf.kind)

    def add_subtree(self, node: ContentNode) -> None:
        self.add_node(node, self.add_parents(node))

    def add_all(self) -> None:
        for top in self.source.top_level():
            self.add_node(top, 0)


def build_manifest(source: ContentSource, identifier: str | None = None) -> TreeManifest:
    """Flatten the whole forest, or the subtree under *identifier*.

    A scoped manifest starts with the minimal ancestor chain of the
    requested node so that depths, and therefore replayed parents, match
    the full repository.

    Raises:
        ManifestBuildError: *identifier* does not resolve, or names an item.
    """
    builder = ManifestBuilder(source)
    if identifier is None or identifier == 'all':
        builder.add_all()
    else:
        node = source.resolve(identifier)
        if node is None:
            raise ManifestBuildError(f'Unresolvable identifier: {identifier}')
        if node.kind.is_leaf:
            raise ManifestBuildError(f'Identifier: {identifier} is not a collection or community')
        builder.add_subtree(node)
    log.info('Built manifest: %d entries', len(builder.manifest))
    return builder.manifest
