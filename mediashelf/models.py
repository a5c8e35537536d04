import datetime
import enum

from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from sqlalchemy.orm import declared_attr

from mediashelf import db


class ReadingStatus(str, enum.Enum):
    TO_READ = 'to_read'
    READING = 'reading'
    COMPLETED = 'completed'
    ON_HOLD = 'on_hold'
    DROPPED = 'dropped'


class DigitalItemType(str, enum.Enum):
    EBOOK = 'ebook'
    AUDIOBOOK = 'audiobook'
    PDF = 'pdf'
    VIDEO = 'video'
    MUSIC = 'music'
    OTHER = 'other'


class DigitalItemFormat(str, enum.Enum):
    EPUB = 'epub'
    PDF = 'pdf'
    MOBI = 'mobi'
    AZW3 = 'azw3'
    MP3 = 'mp3'
    M4A = 'm4a'
    MP4 = 'mp4'
    MKV = 'mkv'
    OTHER = 'other'


class PhysicalItemType(str, enum.Enum):
    BOOK = 'book'
    DVD = 'dvd'
    BLURAY = 'bluray'
    CD = 'cd'
    VINYL = 'vinyl'
    MAGAZINE = 'magazine'
    COMIC = 'comic'
    OTHER = 'other'


class PhysicalItemCondition(str, enum.Enum):
    NEW = 'new'
    LIKE_NEW = 'like_new'
    VERY_GOOD = 'very_good'
    GOOD = 'good'
    ACCEPTABLE = 'acceptable'
    POOR = 'poor'


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


# Association tables for item <-> author / genre relationships
digital_item_authors = db.Table(
    'digital_item_authors',
    db.Column('digital_item_id', db.Integer, db.ForeignKey('digital_item.id'), primary_key=True),
    db.Column('author_id', db.Integer, db.ForeignKey('author.id'), primary_key=True)
)

digital_item_genres = db.Table(
    'digital_item_genres',
    db.Column('digital_item_id', db.Integer, db.ForeignKey('digital_item.id'), primary_key=True),
    db.Column('genre_id', db.Integer, db.ForeignKey('genre.id'), primary_key=True)
)

physical_item_authors = db.Table(
    'physical_item_authors',
    db.Column('physical_item_id', db.Integer, db.ForeignKey('physical_item.id'), primary_key=True),
    db.Column('author_id', db.Integer, db.ForeignKey('author.id'), primary_key=True)
)

physical_item_genres = db.Table(
    'physical_item_genres',
    db.Column('physical_item_id', db.Integer, db.ForeignKey('physical_item.id'), primary_key=True),
    db.Column('genre_id', db.Integer, db.ForeignKey('genre.id'), primary_key=True)
)


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow)

    def __str__(self):
        return self.username

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class Publisher(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False, index=True)
    website = db.Column(db.String(255))
    description = db.Column(db.Text)

    def __str__(self):
        return self.name


class Author(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False, index=True)
    bio = db.Column(db.Text)

    def __str__(self):
        return self.name


class Genre(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False, index=True)

    def __str__(self):
        return self.name


class CatalogItemMixin:
    """Columns shared by digital and physical catalog items."""

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(500), nullable=False, index=True)
    subtitle = db.Column(db.String(500))
    description = db.Column(db.Text)
    isbn = db.Column(db.String(20), index=True)
    lccn = db.Column(db.String(32), index=True)
    publication_date = db.Column(db.Date)
    published_year = db.Column(db.Integer)
    language = db.Column(db.String(20))
    page_count = db.Column(db.Integer)
    cover_image = db.Column(db.String(255))
    rating = db.Column(db.Float)
    reading_status = db.Column(db.String(20))
    is_favorite = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    @declared_attr
    def publisher_id(cls):
        return db.Column(db.Integer, db.ForeignKey('publisher.id'))

    @declared_attr
    def user_id(cls):
        return db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)

    @declared_attr
    def publisher(cls):
        return db.relationship('Publisher')

    @declared_attr
    def owner(cls):
        return db.relationship('User')

    def __str__(self):
        author_names = ", ".join(author.name for author in self.authors)
        return f"{self.title} by {author_names}" if author_names else self.title

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'subtitle': self.subtitle,
            'type': self.type,
            'isbn': self.isbn,
            'lccn': self.lccn,
            'publisher': self.publisher.name if self.publisher else None,
            'publishedYear': self.published_year,
            'authors': [author.name for author in self.authors],
            'genres': [genre.name for genre in self.genres],
            'coverImage': self.cover_image,
            'rating': self.rating,
            'readingStatus': self.reading_status,
        }


class DigitalItem(CatalogItemMixin, db.Model):
    type = db.Column(db.String(20), nullable=False, default=DigitalItemType.EBOOK.value)
    format = db.Column(db.String(20), default=DigitalItemFormat.OTHER.value)
    file_path = db.Column(db.String(500))

    authors = db.relationship('Author', secondary=digital_item_authors, lazy='subquery')
    genres = db.relationship('Genre', secondary=digital_item_genres, lazy='subquery')


class PhysicalItem(CatalogItemMixin, db.Model):
    type = db.Column(db.String(20), nullable=False, default=PhysicalItemType.BOOK.value)
    condition = db.Column(db.String(20))
    location = db.Column(db.String(255))
    quantity = db.Column(db.Integer, default=1, nullable=False)

    authors = db.relationship('Author', secondary=physical_item_authors, lazy='subquery')
    genres = db.relationship('Genre', secondary=physical_item_genres, lazy='subquery')
