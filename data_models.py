from datetime import date

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


BOOK_INSTANCE_STATUSES = ("Available", "Maintenance", "Loaned", "Reserved")
DEFAULT_STATUS = "Maintenance"

# INTEGER columns hold signed 64-bit values.
MAX_ID = 2**63 - 1


def id_in_range(value) -> bool:
    """
    False for an int no row id or reference column can hold.
    """
    return not isinstance(value, int) or -MAX_ID - 1 <= value <= MAX_ID


class RecordMixin:
    """
    Maps a model row to and from the plain record dicts handed to views.

    FIELDS lists the record keys, COLUMNS maps record keys whose column has
    another name, REFERENCES maps reference keys to the store they point at.
    """
    FIELDS = ()
    COLUMNS = {}
    REFERENCES = {}

    def to_record(self) -> dict:
        record = {"id": self.id}
        for field in self.FIELDS:
            record[field] = getattr(self, field)
        return record

    def apply_record(self, record: dict):
        """
        Replace every field with the value from the record (missing -> None).
        """
        for field in self.FIELDS:
            setattr(self, field, record.get(field))

    @classmethod
    def column(cls, field: str):
        if field != "id" and field not in cls.FIELDS:
            raise KeyError(f"{cls.__name__} has no field '{field}'")
        return getattr(cls, cls.COLUMNS.get(field, field))

    @classmethod
    def filter_clause(cls, field: str, value):
        return cls.column(field) == value


class Author(RecordMixin, db.Model):
    """
    Author model storing names and optional life dates.
    """
    __tablename__ = 'authors'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=True)
    date_of_death = db.Column(db.Date, nullable=True)

    FIELDS = ("first_name", "last_name", "date_of_birth", "date_of_death")

    def __repr__(self):
        return f"Author(id = {self.id}, name = {self.last_name}, {self.first_name})"


class Genre(RecordMixin, db.Model):
    """
    Genre model. Names are unique.
    """
    __tablename__ = 'genres'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False, unique=True)

    FIELDS = ("name",)

    def __repr__(self):
        return f"Genre(id = {self.id}, name = {self.name})"


class BookGenre(db.Model):
    """
    One entry of a book's genre list. genre_id is a weak reference.
    """
    __tablename__ = 'book_genres'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    genre_id = db.Column(db.Integer, nullable=False, index=True)


class Book(RecordMixin, db.Model):
    """
    Book model. author and genre hold ids of records in other stores;
    they are not foreign keys, so dangling ids are stored as given.
    """
    __tablename__ = 'books'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    title = db.Column(db.String(200), nullable=False)
    author_id = db.Column(db.Integer, nullable=False, index=True)
    summary = db.Column(db.Text, nullable=False)
    isbn = db.Column(db.String(20), nullable=False)

    genre_links = db.relationship(
        "BookGenre",
        cascade="all, delete-orphan",
        order_by="BookGenre.id",
        lazy="selectin",
    )

    FIELDS = ("title", "author", "summary", "isbn", "genre")
    COLUMNS = {"author": "author_id"}
    REFERENCES = {"author": "author", "genre": "genre"}

    @property
    def author(self):
        return self.author_id

    @author.setter
    def author(self, value):
        self.author_id = value

    @property
    def genre(self) -> list:
        return [link.genre_id for link in self.genre_links]

    @genre.setter
    def genre(self, value):
        # Keep first occurrence of each id, in submitted order.
        ids = list(dict.fromkeys(value or []))
        self.genre_links = [BookGenre(genre_id=genre_id) for genre_id in ids]

    @classmethod
    def filter_clause(cls, field: str, value):
        if field == "genre":
            return cls.genre_links.any(BookGenre.genre_id == value)
        return super().filter_clause(field, value)

    @classmethod
    def column(cls, field: str):
        if field == "genre":
            raise KeyError("Book.genre is a list and has no single column")
        return super().column(field)

    def __repr__(self):
        return f"<Book id={self.id} title='{self.title}'>"


class BookInstance(RecordMixin, db.Model):
    """
    A physical copy of a book with its loan status.
    """
    __tablename__ = 'book_instances'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    book_id = db.Column(db.Integer, nullable=False, index=True)
    imprint = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=DEFAULT_STATUS)
    due_back = db.Column(db.Date, nullable=False, default=date.today)

    FIELDS = ("book", "imprint", "status", "due_back")
    COLUMNS = {"book": "book_id"}
    REFERENCES = {"book": "book"}

    @property
    def book(self):
        return self.book_id

    @book.setter
    def book(self, value):
        self.book_id = value

    def apply_record(self, record: dict):
        super().apply_record(record)
        # Column defaults only fire on INSERT, full replaces need them too.
        if not self.status:
            self.status = DEFAULT_STATUS
        if self.due_back is None:
            self.due_back = date.today()

    def __repr__(self):
        return f"<BookInstance id={self.id} book={self.book_id} status='{self.status}'>"


MODELS = {
    "author": Author,
    "genre": Genre,
    "book": Book,
    "bookinstance": BookInstance,
}


def init_db(app):
    """
    Create all tables for the given app (idempotent).
    """
    with app.app_context():
        db.create_all()
