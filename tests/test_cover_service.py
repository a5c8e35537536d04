import os
import re

import pytest
import requests

from mediashelf.services.cover_service import CoverService
from mediashelf.services.metadata import BookMetadata
from mediashelf.services.storage import LocalFileStorage

COVER_URL = 'http://covers.example.com/b/isbn/9780743273565-L.jpg'


class StubResolver:
    def __init__(self, metadata=None, error=None):
        self.metadata = metadata
        self.error = error
        self.calls = []

    def resolve(self, identifier):
        self.calls.append(identifier)
        if self.error is not None:
            raise self.error
        return self.metadata


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / 'store'))


def _service(storage, fake_http, **kwargs):
    return CoverService(storage, http=fake_http, **kwargs)


def test_fetch_and_store_saves_png_with_sanitized_name(storage, fake_http, png_bytes):
    fake_http.image(COVER_URL, png_bytes, content_type='image/png')
    service = _service(storage, fake_http)

    path = service.fetch_and_store(COVER_URL, 'The Great  Gatsby!')

    assert re.fullmatch(r'covers/cover-the-great-gatsby-\d+\.png', path)
    assert storage.exists(path)
    with open(storage.path_for(path), 'rb') as f:
        assert f.read() == png_bytes


def test_request_uses_timeout_and_browser_user_agent(storage, png_bytes):
    seen = {}

    class DummyResp:
        status_code = 200
        url = COVER_URL
        headers = {'content-type': 'image/jpeg'}

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return None

        def raise_for_status(self):
            return None

        def iter_content(self, chunk_size=1024):
            yield png_bytes

    class Http:
        def get(self, url, **kwargs):
            seen.update(kwargs)
            return DummyResp()

    service = CoverService(storage, http=Http(), timeout=10, user_agent='Mozilla/5.0 Test')
    path = service.fetch_and_store(COVER_URL, '9780743273565')

    assert path.endswith('.jpg')
    assert seen['timeout'] == 10
    assert seen['stream'] is True
    assert seen['headers']['User-Agent'] == 'Mozilla/5.0 Test'


@pytest.mark.parametrize('content_type, ext', [
    ('image/png', '.png'),
    ('image/gif', '.gif'),
    ('image/webp', '.webp'),
    ('image/jpeg', '.jpg'),
    ('application/octet-stream', '.jpg'),
    (None, '.jpg'),
])
def test_extension_for_content_type(content_type, ext):
    assert CoverService.extension_for_content_type(content_type) == ext


def test_sanitize_seed():
    assert CoverService.sanitize_seed('978-0-7432-7356-5') == '9780743273565'
    assert CoverService.sanitize_seed('  Dune:  Part   Two ') == 'dune-part-two'
    assert CoverService.sanitize_seed('!!!') == 'unknown'
    assert CoverService.sanitize_seed(None) == 'unknown'
    assert len(CoverService.sanitize_seed('x' * 200)) == 50


@pytest.mark.parametrize('url', [
    'ftp://example.com/cover.jpg',
    'http://localhost/cover.jpg',
    'http://127.0.0.1/cover.jpg',
    'http://10.0.0.8/cover.jpg',
    'http://192.168.1.5/cover.jpg',
])
def test_disallowed_urls_are_not_fetched(storage, fake_http, url):
    service = _service(storage, fake_http)
    assert service.fetch_and_store(url, 'seed') is None
    assert fake_http.calls == []


def test_placeholder_url_is_ignored(storage, fake_http):
    service = _service(storage, fake_http)
    assert service.fetch_and_store('https://covers.example.com/no-cover.png', 'seed') is None
    assert fake_http.calls == []


def test_failures_return_none_and_store_nothing(storage, fake_http, png_bytes):
    service = _service(storage, fake_http, max_size=len(png_bytes) - 1)

    fake_http.image('http://big.example.com/', png_bytes)
    assert service.fetch_and_store('http://big.example.com/a.png', 'big') is None

    fake_http.image('http://text.example.com/', b'<html>nope</html>', content_type='image/jpeg')
    assert service.fetch_and_store('http://text.example.com/a.jpg', 'text') is None

    fake_http.fail('http://slow.example.com/', requests.exceptions.Timeout())
    assert service.fetch_and_store('http://slow.example.com/a.jpg', 'slow') is None

    # unmatched URL -> 404
    assert service.fetch_and_store('http://missing.example.com/a.jpg', 'missing') is None

    covers_dir = storage.path_for('covers')
    assert not os.path.exists(covers_dir) or os.listdir(covers_dir) == []


def test_declared_content_length_over_limit_is_rejected(storage, png_bytes):
    responses = []

    class DummyResp:
        url = COVER_URL
        headers = {'content-length': str(10 * 1024 * 1024), 'content-type': 'image/png'}
        closed = False

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            self.closed = True

        def raise_for_status(self):
            return None

        def iter_content(self, chunk_size=1024):  # pragma: no cover - must not be read
            raise AssertionError('body should not be streamed')

    class Http:
        def get(self, url, **kwargs):
            responses.append(DummyResp())
            return responses[-1]

    assert CoverService(storage, http=Http()).fetch_and_store(COVER_URL, 'x') is None
    # the streamed connection is released even though the body was never read
    assert responses[0].closed


def test_fetch_cover_by_isbn_uses_resolver(storage, fake_http, png_bytes):
    fake_http.image(COVER_URL, png_bytes)
    resolver = StubResolver(BookMetadata(title='Gatsby', cover_url=COVER_URL))
    service = _service(storage, fake_http, isbn_resolver=resolver)

    path = service.fetch_cover_by_isbn('978-0-7432-7356-5')

    assert path.startswith('covers/cover-9780743273565-')
    assert resolver.calls == ['978-0-7432-7356-5']


def test_fetch_cover_by_isbn_invalid_or_missing_cover(storage, fake_http):
    from mediashelf.services.errors import InvalidIdentifierFormat

    invalid = StubResolver(error=InvalidIdentifierFormat('ISBN', 'bad'))
    assert _service(storage, fake_http, isbn_resolver=invalid).fetch_cover_by_isbn('bad') is None

    no_cover = StubResolver(BookMetadata(title='No cover'))
    assert _service(storage, fake_http, isbn_resolver=no_cover).fetch_cover_by_isbn('9780743273565') is None

    not_found = StubResolver(None)
    assert _service(storage, fake_http, isbn_resolver=not_found).fetch_cover_by_isbn('9780743273565') is None
    assert fake_http.calls == []


def test_fetch_cover_by_lccn(storage, fake_http, png_bytes):
    fake_http.image(COVER_URL, png_bytes, content_type='image/gif')
    resolver = StubResolver(BookMetadata(title='LoC', cover_url=COVER_URL))
    service = _service(storage, fake_http, lccn_resolver=resolver)

    path = service.fetch_cover_by_lccn('2001-012345')
    assert re.fullmatch(r'covers/cover-2001012345-\d+\.gif', path)


def test_delete_is_idempotent(storage, fake_http, png_bytes):
    fake_http.image(COVER_URL, png_bytes)
    service = _service(storage, fake_http)
    path = service.fetch_and_store(COVER_URL, 'gatsby')

    assert service.delete(path) is True
    assert service.delete(path) is False
    assert service.delete('covers/never-existed.jpg') is False
    assert service.delete(None) is False


def test_storage_rejects_paths_outside_root(storage):
    with pytest.raises(ValueError):
        storage.path_for('../escape.txt')
    assert storage.delete('../escape.txt') is False


@pytest.mark.parametrize('url', [
    'http://[broken/cover.png',
    'http://[::1/cover.png',
    'https://',
])
def test_malformed_urls_return_none(storage, fake_http, url):
    service = _service(storage, fake_http)

    assert CoverService.is_allowed_url(url) is False
    assert service.fetch_and_store(url, 'seed') is None
    assert fake_http.calls == []


@pytest.mark.parametrize('addresses, allowed', [
    (['93.184.216.34'], True),
    (['10.1.2.3'], False),
    (['93.184.216.34', '127.0.0.1'], False),
    (['fe80::1%eth0'], False),
    ([], True),
])
def test_host_names_are_checked_by_resolved_address(monkeypatch, addresses, allowed):
    monkeypatch.setattr(
        'mediashelf.services.cover_service.resolve_host_addresses',
        lambda hostname: addresses,
    )
    assert CoverService.is_allowed_url('http://covers.internal.example/a.jpg') is allowed


def test_host_resolving_to_private_address_is_not_fetched(storage, fake_http, png_bytes, monkeypatch):
    monkeypatch.setattr(
        'mediashelf.services.cover_service.resolve_host_addresses',
        lambda hostname: ['192.168.0.10'],
    )
    fake_http.image(COVER_URL, png_bytes)

    assert _service(storage, fake_http).fetch_and_store(COVER_URL, 'seed') is None
    assert fake_http.calls == []


def test_oversized_stream_is_closed(storage, fake_http, png_bytes):
    fake_http.image(COVER_URL, png_bytes)
    response = fake_http.routes[-1][1]

    assert _service(storage, fake_http, max_size=8).fetch_and_store(COVER_URL, 'seed') is None
    assert response.closed
