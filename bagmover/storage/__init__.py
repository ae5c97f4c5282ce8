"""Storage package: digesting writer and metadata markup streams."""

from .digest import DigestAlgorithmError, DigestStream, file_digest, new_digest
from .markup import MarkupError, MarkupReader, MarkupValue, MarkupWriter

__all__ = [
    'DigestStream',
    'DigestAlgorithmError',
    'file_digest',
    'new_digest',
    'MarkupValue',
    'MarkupWriter',
    'MarkupReader',
    'MarkupError',
]
