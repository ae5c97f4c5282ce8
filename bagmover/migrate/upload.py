"""HTTP upload of finished packages to the target repository."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import httpx

from bagmover.tree.manifest import NodeKind

log = logging.getLogger(__name__)

PACKAGE_CONTENT_TYPE = 'application/zip'


class UploadError(Exception):
    pass


def post_url(target_url: str, parent: str | None, kind: NodeKind) -> str:
    """Return the URL a package of *kind* is posted to.

    Root objects go to ``<target>/package/<kind>-sip``; anything with a
    parent goes to ``<target>/<parent>/package/<kind>-sip``.
    """
    # TODO: discover these endpoints from the target's REST API instead of building them
    base = target_url if target_url.endswith('/') else target_url + '/'
    pkg_name = f'package/{kind.label}-sip'
    return f'{base}{parent}/{pkg_name}' if parent is not None else base + pkg_name


class Uploader:
    """POST zip packages, retrying each whole package on failure.

    Designed for use from a single thread. Not thread-safe.
    """

    def __init__(
        self,
        timeout: float = 60.0,
        retries: int = 3,
        retry_delay: float = 2.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._retries = max(1, retries)
        self._retry_delay = retry_delay
        self._client = client if client is not None else httpx.Client(timeout=timeout)

    def __enter__(self) -> Uploader:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def upload(self, package: Path, url: str) -> httpx.Response:
        attempt = 0
        while True:
            attempt += 1
            try:
                with open(package, 'rb') as f:
                    resp = self._client.post(
                        url, content=f, headers={'Content-Type': PACKAGE_CONTENT_TYPE}
                    )
                resp.raise_for_status()
            except httpx.HTTPError as exc:
                log.warning(
                    'Upload of %s to %s failed (attempt %d/%d): %s',
                    package.name,
                    url,
                    attempt,
                    self._retries,
                    exc,
                )
                if attempt >= self._retries:
                    raise UploadError(f'{package.name}: {exc}') from exc
                time.sleep(self._retry_delay)
                continue
            log.info('Uploaded %s -> %s (%d)', package.name, url, resp.status_code)
            return resp
