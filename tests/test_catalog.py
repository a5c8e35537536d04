import datetime

import pytest

from mediashelf import db
from mediashelf.models import Author, Genre, Publisher, DigitalItem, PhysicalItem, User
from mediashelf.services.catalog import CatalogService, parse_publication_date


def test_find_or_create_reuses_existing_rows(app):
    first = CatalogService.find_or_create_author('Ursula K. Le Guin')
    second = CatalogService.find_or_create_author('  Ursula K. Le Guin ')
    db.session.commit()

    assert first.id == second.id
    assert Author.query.count() == 1


def test_publisher_match_is_case_sensitive(app):
    CatalogService.find_or_create_publisher('Penguin')
    CatalogService.find_or_create_publisher('penguin')
    db.session.commit()
    assert Publisher.query.count() == 2


def test_find_or_create_rejects_empty_name(app):
    with pytest.raises(ValueError):
        CatalogService.find_or_create_genre('   ')


def test_concurrent_insert_is_resolved_by_refetch(app, monkeypatch):
    existing = Genre(name='Fantasy')
    db.session.add(existing)
    db.session.commit()

    original_lookup = CatalogService._lookup
    calls = []

    def stale_lookup(model, name):
        # first lookup misses, as if another writer inserted in between
        calls.append(name)
        if len(calls) == 1:
            return None
        return original_lookup(model, name)

    monkeypatch.setattr(CatalogService, '_lookup', staticmethod(stale_lookup))

    genre = CatalogService.find_or_create_genre('Fantasy')

    assert genre.id == existing.id
    assert len(calls) == 2
    assert Genre.query.count() == 1
    # the session is still usable after the rolled-back savepoint
    CatalogService.find_or_create_genre('Horror')
    db.session.commit()
    assert Genre.query.count() == 2


def test_create_physical_item_parses_date_and_links(app, user):
    publisher = CatalogService.find_or_create_publisher('Ace')
    item = CatalogService.create_physical_item(
        user,
        title=' Dune ',
        isbn='0441013597',
        publisher=publisher,
        publication_date='1990-09-01',
        rating=4.0,
        condition='good',
        location='Shelf 2',
    )
    author = CatalogService.find_or_create_author('Frank Herbert')
    CatalogService.associate_author(item, author)
    CatalogService.associate_author(item, author)
    CatalogService.associate_genre(item, CatalogService.find_or_create_genre('Sci-Fi'))
    db.session.commit()

    stored = db.session.get(PhysicalItem, item.id)
    assert stored.title == 'Dune'
    assert stored.type == 'book'
    assert stored.publication_date == datetime.date(1990, 9, 1)
    assert stored.published_year == 1990
    assert stored.publisher.name == 'Ace'
    assert [a.name for a in stored.authors] == ['Frank Herbert']
    assert [g.name for g in stored.genres] == ['Sci-Fi']
    assert stored.owner.username == user.username
    assert stored.quantity == 1


def test_create_digital_item_defaults(app, user):
    item = CatalogService.create_digital_item(user, title='Notes', format='epub', file_path='/books/notes.epub')
    db.session.commit()

    assert item.type == 'ebook'
    assert item.format == 'epub'
    assert item.publication_date is None
    assert DigitalItem.query.count() == 1


@pytest.mark.parametrize('fields', [
    {'title': ''},
    {'title': 'X', 'rating': 5.5},
    {'title': 'X', 'publication_date': 'abcd-01-01'},
    {'title': 'X', 'publication_date': '0999-01-01'},
    {'title': 'X', 'publication_date': f'{datetime.date.today().year + 2}-01-01'},
])
def test_create_item_validation_errors(app, user, fields):
    with pytest.raises(ValueError):
        CatalogService.create_physical_item(user, **fields)


def test_parse_publication_date():
    assert parse_publication_date('2006') == datetime.date(2006, 1, 1)
    assert parse_publication_date('2006-03-04T10:00:00') == datetime.date(2006, 3, 4)
    assert parse_publication_date(datetime.date(2001, 2, 3)) == datetime.date(2001, 2, 3)
    assert parse_publication_date('') is None
    with pytest.raises(ValueError):
        parse_publication_date('March 2006')


def test_find_by_identifier_is_scoped_to_owner(app, user):
    other = User(username='other', email='other@test.com')
    other.set_password('password')
    db.session.add(other)
    CatalogService.create_digital_item(user, title='Mine', isbn='9780743273565', lccn='2001012345')
    CatalogService.create_physical_item(other, title='Theirs', isbn='0306406152')
    db.session.commit()

    item_type, item = CatalogService.find_by_identifier(user, isbn='978-0-7432-7356-5')
    assert item_type == 'digital' and item.title == 'Mine'

    assert CatalogService.find_by_identifier(user, lccn='2001-012345')[1].title == 'Mine'
    assert CatalogService.find_by_identifier(user, isbn='0306406152') is None
    assert CatalogService.find_by_identifier(other, isbn='0306406152')[0] == 'physical'
    assert CatalogService.find_by_identifier(user) is None
