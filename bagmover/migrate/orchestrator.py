"""Migration workflow: export, package, upload.

Steps:
  1. Validate configuration (digest algorithm)
  2. Build the export manifest from the content source
  3. Persist the manifest to the scratch directory
  4. Build one package per manifest entry
  5. Replay the manifest, uploading each package beneath its parent

Steps 4 and 5 reload the persisted manifest when run without a fresh
export, so upload can happen in a later invocation than export.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from pathlib import Path

from bagmover.config import Config
from bagmover.content.source import ContentSource
from bagmover.migrate.packages import PackageMaker, package_path
from bagmover.migrate.upload import Uploader, post_url
from bagmover.storage.digest import new_digest
from bagmover.tree.builder import build_manifest
from bagmover.tree.manifest import TreeManifest

log = logging.getLogger(__name__)


class MigrationResult(Enum):
    SUCCESS = auto()
    NOTHING_TO_DO = auto()
    ERROR = auto()


class MigrationError(Exception):
    pass


class MigrationOrchestrator:
    """Runs the export/upload workflow for one scratch directory."""

    def __init__(
        self,
        config: Config,
        source: ContentSource | None = None,
        uploader: Uploader | None = None,
    ) -> None:
        # --- Step 1: fail fast on a bad digest algorithm ---
        new_digest(config.digest_algorithm)
        self.config = config
        self.source = source
        self.uploader = uploader
        self.scratch_dir = Path(config.scratch_dir)
        self.manifest = TreeManifest()

    @property
    def manifest_path(self) -> Path:
        return self.scratch_dir / self.config.manifest_filename

    def run(self, identifier: str | None = None, target_url: str | None = None) -> MigrationResult:
        """Export and/or upload. Returns MigrationResult."""
        if not identifier and not target_url:
            log.warning('Nothing to do: no identifier to export and no target to upload to')
            return MigrationResult.NOTHING_TO_DO
        try:
            if identifier:
                self.export(identifier)
            if target_url:
                self.upload(target_url)
        except Exception as exc:
            log.exception('Migration failed: %s', exc)
            return MigrationResult.ERROR
        return MigrationResult.SUCCESS

    def export(self, identifier: str) -> TreeManifest:
        """Build and persist the manifest for *identifier* ('all' for everything), then package it."""
        source = self._require_source()

        log.info('Step 2: Building manifest for %s', identifier)
        self.manifest = build_manifest(source, identifier)

        log.info('Step 3: Writing manifest to %s', self.manifest_path)
        self.manifest.write(self.manifest_path)

        self.build_packages()
        return self.manifest

    def build_packages(self) -> list[Path]:
        source = self._require_source()
        self._load_manifest()

        log.info('Step 4: Building %d packages in %s', len(self.manifest), self.scratch_dir)
        maker = PackageMaker(self.scratch_dir, source, self.config)
        packages = []
        for idx, entry in enumerate(self.manifest, start=1):
            node = source.resolve(entry.identifier)
            if node is None:
                raise MigrationError(f'Unresolvable identifier: {entry.identifier}')
            if node.kind is not entry.kind:
                raise MigrationError(
                    f'{entry.identifier}: manifest says {entry.kind.label}, source says {node.kind.label}'
                )
            packages.append(maker.make(node))
            log.debug('Package %d/%d: %s', idx, len(self.manifest), entry.identifier)
        return packages

    def upload(self, target_url: str) -> int:
        """Replay the manifest, posting each package under its parent. Returns the upload count."""
        self._load_manifest()
        if self.config.strict_manifest:
            self.manifest.validate()

        log.info('Step 5: Uploading %d packages to %s', len(self.manifest), target_url)
        uploader = self.uploader
        if uploader is None:
            uploader = Uploader(
                timeout=self.config.upload_timeout,
                retries=self.config.upload_retries,
                retry_delay=self.config.upload_retry_delay,
            )
        count = 0
        try:
            for entry, parent in self.manifest.replay(strict=self.config.strict_manifest):
                package = package_path(self.scratch_dir, entry.identifier)
                if not package.exists():
                    raise MigrationError(f'Missing package for {entry.identifier}: {package}')
                uploader.upload(package, post_url(target_url, parent, entry.kind))
                count += 1
        finally:
            if self.uploader is None:
                uploader.close()
        log.info('Uploaded %d packages', count)
        return count

    def _load_manifest(self) -> None:
        if self.manifest.is_empty():
            if not self.manifest_path.exists():
                raise MigrationError(f'No manifest in memory and none at {self.manifest_path}')
            self.manifest = TreeManifest.read(self.manifest_path)

    def _require_source(self) -> ContentSource:
        if self.source is None:
            raise MigrationError('A content source is required to build packages')
        return self.source
