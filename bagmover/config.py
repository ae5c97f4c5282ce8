"""TOML configuration loading with dataclass defaults.

Uses stdlib tomllib (Python 3.11+).
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path('/etc/bagmover/bagmover.toml')
_LOCAL_CONFIG_PATH = Path(__file__).parent.parent / 'config' / 'bagmover.toml'

COMMUNITY_FIELDS = [
    'name',
    'short_description',
    'introductory_text',
    'copyright_text',
    'side_bar_text',
]

COLLECTION_FIELDS = [
    'name',
    'short_description',
    'introductory_text',
    'provenance_description',
    'license',
    'copyright_text',
    'side_bar_text',
]


@dataclass
class Config:
    # Export
    scratch_dir: str = '/var/tmp/bagmover'
    manifest_filename: str = 'export.map'
    digest_algorithm: str = 'md5'
    read_chunk_size: int = 65536
    skip_bundles: list[str] = field(default_factory=lambda: ['TEXT'])
    community_fields: list[str] = field(default_factory=lambda: list(COMMUNITY_FIELDS))
    collection_fields: list[str] = field(default_factory=lambda: list(COLLECTION_FIELDS))

    # Upload
    target_url: str = ''
    upload_timeout: float = 60.0
    upload_retries: int = 3
    upload_retry_delay: float = 2.0

    # Replay refuses manifests that break the depth invariants
    strict_manifest: bool = True


def load_config(path: str | None = None) -> Config:
    """Load config from TOML file, falling back to defaults.

    Search order:
    1. `path` argument (if provided)
    2. /etc/bagmover/bagmover.toml
    3. <repo>/config/bagmover.toml
    4. All defaults
    """
    candidates = []
    if path:
        candidates.append(Path(path))
    candidates += [_DEFAULT_CONFIG_PATH, _LOCAL_CONFIG_PATH]

    for candidate in candidates:
        if candidate.exists():
            log.debug('Loading config from %s', candidate)
            try:
                with open(candidate, 'rb') as f:
                    data = tomllib.load(f)
                return _apply(Config(), data)
            except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
                log.warning('Failed to load config %s: %s', candidate, exc)

    log.debug('Using default config (no config file found)')
    return Config()


def _apply(cfg: Config, data: dict) -> Config:
    """Apply TOML data dict to Config dataclass."""
    for key, value in data.items():
        if hasattr(cfg, key):
            setattr(cfg, key, value)
        else:
            log.warning('Unknown config key: %s', key)
    return cfg
