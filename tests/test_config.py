from mediashelf import db
from mediashelf.models import Publisher


def test_only_shipped_locale_is_offered(app):
    assert app.config['LANGUAGES'] == ['en']
    assert app.config['BABEL_DEFAULT_LOCALE'] == 'en'
    assert 'BABEL_TRANSLATION_DIRECTORIES' not in app.config
    assert 'APP_ENV' not in app.config


def test_session_cookie_defaults(app):
    assert app.config['SESSION_COOKIE_HTTPONLY'] is True
    assert app.config['SESSION_COOKIE_SAMESITE'] == 'Lax'


def test_sqlite_savepoint_is_undone_by_outer_rollback(app):
    with db.session.begin_nested():
        db.session.add(Publisher(name='Ghost Press'))

    db.session.rollback()

    assert Publisher.query.filter_by(name='Ghost Press').first() is None
