"""Bag package: filling, zipping and verifying checksummed bags."""

from .filler import BagFiller, manifest_name, tagmanifest_name
from .reader import BagReader, extract_package

__all__ = [
    'BagFiller',
    'BagReader',
    'extract_package',
    'manifest_name',
    'tagmanifest_name',
]
