"""Tests for upload URL construction and package POSTs."""

import httpx
import pytest

from bagmover.migrate.upload import UploadError, Uploader, post_url
from bagmover.tree.manifest import NodeKind


class TestPostUrl:
    def test_root(self):
        assert post_url('http://mds.example.org/webapi', None, NodeKind.COMMUNITY) == (
            'http://mds.example.org/webapi/package/community-sip'
        )

    def test_with_parent(self):
        assert post_url('http://mds.example.org/webapi/', '123/4', NodeKind.ITEM) == (
            'http://mds.example.org/webapi/123/4/package/item-sip'
        )

    def test_collection(self):
        assert post_url('http://h', '123/1', NodeKind.COLLECTION).endswith('/123/1/package/collection-sip')


@pytest.fixture
def package(tmp_path):
    path = tmp_path / '123-1.zip'
    path.write_bytes(b'PK\x03\x04 fake zip')
    return path


def make_uploader(handler, retries=3) -> Uploader:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return Uploader(retries=retries, retry_delay=0, client=client)


class TestUploader:
    def test_posts_zip(self, package):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, str(request.url), request.headers['content-type'], request.read()))
            return httpx.Response(201)

        with make_uploader(handler) as up:
            resp = up.upload(package, 'http://t/package/community-sip')
        assert resp.status_code == 201
        assert seen == [('POST', 'http://t/package/community-sip', 'application/zip', b'PK\x03\x04 fake zip')]

    def test_retries_then_succeeds(self, package):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.read())
            return httpx.Response(503 if len(calls) < 3 else 200)

        with make_uploader(handler) as up:
            up.upload(package, 'http://t/x')
        assert len(calls) == 3
        # whole package is resent on every attempt
        assert all(body == b'PK\x03\x04 fake zip' for body in calls)

    def test_gives_up_after_retries(self, package):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(500)

        with make_uploader(handler, retries=2) as up:
            with pytest.raises(UploadError, match='123-1.zip'):
                up.upload(package, 'http://t/x')
        assert len(calls) == 2

    def test_transport_error_is_retried(self, package):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError('refused', request=request)
            return httpx.Response(200)

        with make_uploader(handler) as up:
            up.upload(package, 'http://t/x')
        assert len(calls) == 2

    def test_missing_package_is_os_error(self, tmp_path):
        with make_uploader(lambda request: httpx.Response(200)) as up:
            with pytest.raises(OSError):
                up.upload(tmp_path / 'missing.zip', 'http://t/x')
