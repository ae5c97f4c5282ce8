"""Content source package: repository objects read during export."""

from .source import Bitstream, Bundle, ContentNode, ContentSource, MetadataField
from .static import ContentDescriptionError, StaticContentSource

__all__ = [
    'Bitstream',
    'Bundle',
    'ContentNode',
    'ContentSource',
    'MetadataField',
    'StaticContentSource',
    'ContentDescriptionError',
]
