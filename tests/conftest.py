import pytest

from app import create_app
from data_models import db
from entity_store import get_store


class StoreProxy:
    """
    Calls a store method inside a fresh app context, so every call sees
    what earlier requests committed.
    """

    def __init__(self, app, name):
        self._app = app
        self._name = name

    def __getattr__(self, attr):
        def call(*args, **kwargs):
            with self._app.app_context():
                return getattr(get_store(self._name), attr)(*args, **kwargs)
        return call


@pytest.fixture
def app(tmp_path):
    """
    App bound to a throwaway SQLite file, with tables created before the
    test and dropped after it.
    """
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'library.sqlite'}",
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def stores(app):
    return {name: StoreProxy(app, name) for name in ("author", "genre", "book", "bookinstance")}


@pytest.fixture
def author_id(stores):
    return stores["author"].insert({"first_name": "Patrick", "last_name": "Rothfuss"})


@pytest.fixture
def genre_id(stores):
    return stores["genre"].insert({"name": "Fantasy"})


@pytest.fixture
def book_id(stores, author_id, genre_id):
    return stores["book"].insert({
        "title": "The Name of the Wind",
        "author": author_id,
        "summary": "Kvothe tells his story.",
        "isbn": "9781473211896",
        "genre": [genre_id],
    })
