from datetime import date

import pytest

from data_models import db
from entity_store import get_store, init_stores
from errors import DuplicateError, NotFoundError, StoreError


def test_insert_and_find_by_id(stores):
    new_id = stores["author"].insert({
        "first_name": "Isaac",
        "last_name": "Asimov",
        "date_of_birth": date(1920, 1, 2),
    })

    assert stores["author"].find_by_id(new_id) == {
        "id": new_id,
        "first_name": "Isaac",
        "last_name": "Asimov",
        "date_of_birth": date(1920, 1, 2),
        "date_of_death": None,
    }


def test_find_by_id_missing(stores):
    assert stores["book"].find_by_id(404) is None


def test_find_filters_by_reference(stores, author_id, book_id):
    other = stores["author"].insert({"first_name": "Ken", "last_name": "Liu"})
    stores["book"].insert({"title": "Grace of Kings", "author": other, "summary": "s", "isbn": "1", "genre": []})

    books = stores["book"].find({"author": author_id})

    assert [b["id"] for b in books] == [book_id]


def test_find_genre_filter_means_contains(stores, book_id, genre_id):
    scifi = stores["genre"].insert({"name": "Science Fiction"})
    both = stores["book"].insert({
        "title": "Hyperion", "author": 1, "summary": "s", "isbn": "2", "genre": [scifi, genre_id],
    })

    assert [b["id"] for b in stores["book"].find({"genre": genre_id})] == [book_id, both]
    assert [b["id"] for b in stores["book"].find({"genre": scifi})] == [both]


def test_find_projection_keeps_id(stores, book_id):
    assert stores["book"].find({}, fields=("title",)) == [{"id": book_id, "title": "The Name of the Wind"}]


def test_find_all_sorts(stores):
    stores["genre"].insert({"name": "Poetry"})
    stores["genre"].insert({"name": "Drama"})
    stores["genre"].insert({"name": "Horror"})

    assert [g["name"] for g in stores["genre"].find_all(sort="name")] == ["Drama", "Horror", "Poetry"]
    assert [g["name"] for g in stores["genre"].find_all(sort="-name")] == ["Poetry", "Horror", "Drama"]


def test_populate_references(stores, book_id, author_id, genre_id):
    book = stores["book"].find_by_id(book_id, populate=("author", "genre"))

    assert book["author"]["id"] == author_id
    assert book["author"]["last_name"] == "Rothfuss"
    assert [g["name"] for g in book["genre"]] == ["Fantasy"]


def test_weak_references_are_stored_as_given(stores):
    book_id = stores["book"].insert({"title": "Orphan", "author": 99, "summary": "s", "isbn": "3", "genre": [77]})

    raw = stores["book"].find_by_id(book_id)
    populated = stores["book"].find_by_id(book_id, populate=("author", "genre"))

    assert raw["author"] == 99
    assert raw["genre"] == [77]
    assert populated["author"] is None
    assert populated["genre"] == []


def test_update_replaces_the_whole_record(stores, book_id, author_id):
    poetry = stores["genre"].insert({"name": "Poetry"})

    updated = stores["book"].update_by_id(book_id, {
        "title": "The Wise Man's Fear",
        "author": author_id,
        "summary": "Part two.",
        "isbn": "9780756404734",
        "genre": [poetry],
    })

    assert updated["title"] == "The Wise Man's Fear"
    assert stores["book"].find_by_id(book_id)["genre"] == [poetry]


def test_update_missing_record(stores):
    with pytest.raises(NotFoundError):
        stores["genre"].update_by_id(12, {"name": "Nope"})


def test_remove_by_id(stores, genre_id):
    assert stores["genre"].remove_by_id(genre_id) is True
    assert stores["genre"].find_by_id(genre_id) is None
    assert stores["genre"].remove_by_id(genre_id) is False


def test_removing_a_book_drops_its_genre_links(app, stores, book_id):
    from data_models import BookGenre

    stores["book"].remove_by_id(book_id)

    with app.app_context():
        assert db.session.scalar(db.select(db.func.count()).select_from(BookGenre)) == 0


def test_count(stores, book_id):
    stores["bookinstance"].insert({"book": book_id, "imprint": "DAW", "status": "Available"})
    stores["bookinstance"].insert({"book": book_id, "imprint": "DAW", "status": "Loaned"})

    assert stores["bookinstance"].count() == 2
    assert stores["bookinstance"].count({"status": "Available"}) == 1


def test_book_instance_defaults_on_insert(stores, book_id):
    new_id = stores["bookinstance"].insert({"book": book_id, "imprint": "DAW"})
    record = stores["bookinstance"].find_by_id(new_id)

    assert record["status"] == "Maintenance"
    assert record["due_back"] == date.today()


def test_duplicate_genre_name(stores, genre_id):
    with pytest.raises(DuplicateError):
        stores["genre"].insert({"name": "Fantasy"})

    # The session was rolled back and stays usable.
    assert stores["genre"].count() == 1


def test_store_failures_become_store_errors(app):
    with app.app_context():
        db.drop_all()
        with pytest.raises(StoreError) as excinfo:
            get_store("author").find_all()

    assert excinfo.value.__cause__ is not None


def test_get_store_rejects_unknown_names(app):
    with app.app_context():
        with pytest.raises(RuntimeError, match="Unknown entity store"):
            get_store("publisher")


def test_stores_are_initialised_once(app):
    with pytest.raises(RuntimeError, match="already initialised"):
        init_stores(app)


def test_ids_beyond_the_integer_column_are_absent(stores, book_id):
    huge = 2**63

    assert stores["author"].find_by_id(huge) is None
    assert stores["author"].find_many([huge]) == {}
    assert stores["book"].find({"author": huge}) == []
    assert stores["book"].find({"genre": huge}) == []
    assert stores["genre"].find_one({"id": huge}) is None
    assert stores["bookinstance"].count({"book": huge}) == 0
    assert stores["author"].remove_by_id(huge) is False
    with pytest.raises(NotFoundError):
        stores["genre"].update_by_id(huge, {"name": "Nope"})


def test_out_of_range_write_becomes_store_error(stores):
    with pytest.raises(StoreError) as excinfo:
        stores["book"].insert({"title": "T", "author": 2**63, "summary": "S", "isbn": "1"})

    assert isinstance(excinfo.value.__cause__, OverflowError)
    # The session was rolled back and stays usable.
    assert stores["book"].count() == 0
