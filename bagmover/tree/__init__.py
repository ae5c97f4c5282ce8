"""Export manifest package: flat depth-tagged tree encoding and replay."""

from .builder import ManifestBuildError, ManifestBuilder, build_manifest
from .manifest import ManifestEntry, ManifestFormatError, NodeKind, TreeManifest

__all__ = [
    'NodeKind',
    'ManifestEntry',
    'TreeManifest',
    'ManifestFormatError',
    'ManifestBuilder',
    'ManifestBuildError',
    'build_manifest',
]
