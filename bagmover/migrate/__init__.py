"""Migration package: package building, upload and orchestration."""

from .orchestrator import MigrationError, MigrationOrchestrator, MigrationResult
from .packages import PackageMaker, package_basename, package_path, read_metadata, write_metadata
from .upload import UploadError, Uploader, post_url

__all__ = [
    'MigrationOrchestrator',
    'MigrationResult',
    'MigrationError',
    'PackageMaker',
    'package_basename',
    'package_path',
    'write_metadata',
    'read_metadata',
    'Uploader',
    'UploadError',
    'post_url',
]
