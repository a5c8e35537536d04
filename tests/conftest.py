import io

import pytest
import requests
from PIL import Image

from mediashelf import create_app, db
from mediashelf.models import User


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, json_data=None, status_code=200, content=b'', headers=None, url=None):
        self._json = json_data
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.url = url
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.closed = True

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def iter_content(self, chunk_size=1024):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]


class FakeHttp:
    """requests-compatible client answering by URL prefix.

    A route value may be a FakeResponse, an exception instance (raised) or a
    callable ``(url, params) -> FakeResponse``. Unmatched URLs get a 404.
    """

    def __init__(self):
        self.routes = []
        self.calls = []

    def route(self, prefix, response):
        self.routes.append((prefix, response))
        return self

    def json(self, prefix, data, status_code=200):
        return self.route(prefix, FakeResponse(json_data=data, status_code=status_code))

    def json_by_param(self, prefix, param, table, default=None):
        """Answer JSON chosen by one query parameter, e.g. ``q`` or ``bibkeys``."""
        def respond(url, params):
            return FakeResponse(json_data=table.get((params or {}).get(param), default or {}), url=url)
        return self.route(prefix, respond)

    def image(self, prefix, content, content_type='image/png'):
        return self.route(prefix, FakeResponse(content=content, headers={'content-type': content_type}))

    def fail(self, prefix, error):
        return self.route(prefix, error)

    def get(self, url, params=None, **kwargs):
        self.calls.append((url, params))
        for prefix, response in self.routes:
            if url.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(url, params)
                if response.url is None:
                    response.url = url
                return response
        return FakeResponse(status_code=404, url=url)

    def called(self, prefix):
        return [call for call in self.calls if call[0].startswith(prefix)]


PUBLIC_ADDRESS = '93.184.216.34'


@pytest.fixture(autouse=True)
def public_dns(monkeypatch):
    """Every host name resolves to a public address unless a test says otherwise."""
    monkeypatch.setattr(
        'mediashelf.services.cover_service.resolve_host_addresses',
        lambda hostname: [PUBLIC_ADDRESS],
    )


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Create and configure a test app."""
    monkeypatch.setenv('SECRET_KEY', 'test-secret-key')
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///:memory:')
    monkeypatch.setenv('UPLOAD_FOLDER', str(tmp_path / 'uploads'))
    app = create_app()
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def user(app):
    user = User(username='reader', email='reader@test.com')
    user.set_password('password')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_client(client, user):
    with client.session_transaction() as sess:
        sess['_user_id'] = str(user.id)
        sess['_fresh'] = True
    return client


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def services(app, fake_http):
    """Rebuild the app's services on top of the fake HTTP client."""
    from mediashelf.services.registry import init_services
    return init_services(app, http=fake_http)


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new('RGB', (4, 6), color=(200, 30, 30)).save(buf, format='PNG')
    return buf.getvalue()
