"""
Catalog views: list, detail, create, update and delete screens for
authors, genres, books and book instances.
"""

from flask import Blueprint, current_app, flash, jsonify, redirect, render_template, request, url_for

import reference_guard
import workflow
from entity_store import get_store
from errors import NotFoundError
from fan_out import fan_out
from openlibrary import fetch_summary_by_isbn, normalize_isbn
from presenters import entity_url, mark_checked, status_options
from reference_guard import DeleteState, Dependency
from validation import AUTHOR_FIELDS, BOOK_FIELDS, BOOK_INSTANCE_FIELDS, GENRE_FIELDS


catalog = Blueprint("catalog", __name__, url_prefix="/catalog")


def _found(record, kind: str, record_id, view: str):
    """
    Return the record, or stop the request with a 404.
    """
    if record is None:
        current_app.logger.debug("%s: %s %s not found", view, kind, record_id)
        raise NotFoundError(kind, record_id)
    return record


def _delete_response(outcome, list_endpoint: str, label: str, render_blocked):
    """
    Turn a delete outcome into a response.
    """
    if outcome.state is DeleteState.BLOCKED:
        return render_blocked(outcome.entity, outcome.dependents)

    if outcome.state is DeleteState.REMOVED:
        flash(f"{label} was deleted successfully ♻️", "success")
    return redirect(url_for(list_endpoint))


@catalog.route("/")
def index():
    """
    Home page with record counts.
    """
    books, instances = get_store("book"), get_store("bookinstance")
    authors, genres = get_store("author"), get_store("genre")

    data = fan_out({
        "book_count": books.count,
        "book_instance_count": instances.count,
        "book_instance_available_count": lambda: instances.count({"status": "Available"}),
        "author_count": authors.count,
        "genre_count": genres.count,
    })
    return render_template("index.html", title="Local Library Home", data=data)


# --- Authors ---

def _author_dependency():
    return Dependency(get_store("book"), "author", fields=("title", "summary"))


@catalog.route("/authors")
def author_list():
    authors = get_store("author").find_all(sort=("last_name", "first_name"))
    return render_template("author/list.html", title="Author List", author_list=authors)


@catalog.route("/author/<int:author_id>")
def author_detail(author_id):
    """
    Show an author with the books they wrote.
    """
    authors, books = get_store("author"), get_store("book")
    results = fan_out({
        "author": lambda: authors.find_by_id(author_id),
        "author_books": lambda: books.find({"author": author_id}, fields=("title", "summary"), sort="title"),
    })
    author = _found(results["author"], "Author", author_id, "author_detail")
    return render_template(
        "author/detail.html",
        title="Author Detail",
        author=author,
        author_books=results["author_books"],
    )


@catalog.route("/author/create", methods=["GET", "POST"])
def author_create():
    if request.method == "POST":
        outcome = workflow.create(get_store("author"), request.form, AUTHOR_FIELDS)
        if outcome.committed:
            return redirect(entity_url("author", outcome.record_id))
        return render_template(
            "author/form.html", title="Create Author", author=outcome.candidate, errors=outcome.errors
        )

    return render_template("author/form.html", title="Create Author", author=None, errors=[])


@catalog.route("/author/<int:author_id>/update", methods=["GET", "POST"])
def author_update(author_id):
    authors = get_store("author")

    if request.method == "POST":
        outcome = workflow.update(authors, author_id, request.form, AUTHOR_FIELDS)
        if outcome.committed:
            return redirect(entity_url("author", author_id))
        return render_template(
            "author/form.html", title="Update Author", author=outcome.candidate, errors=outcome.errors
        )

    author = _found(authors.find_by_id(author_id), "Author", author_id, "author_update")
    return render_template("author/form.html", title="Update Author", author=author, errors=[])


@catalog.route("/author/<int:author_id>/delete", methods=["GET", "POST"])
def author_delete(author_id):
    """
    Confirm (GET) or perform (POST) an author delete. Authors with books
    cannot be deleted; their books are listed instead.
    """
    authors = get_store("author")

    def render(author, books):
        return render_template("author/delete.html", title="Delete Author", author=author, author_books=books)

    if request.method == "POST":
        outcome = reference_guard.guarded_delete(authors, author_id, _author_dependency())
        return _delete_response(outcome, "catalog.author_list", "Author", render)

    report = reference_guard.inspect(authors, author_id, _author_dependency())
    if report.entity is None:
        return redirect(url_for("catalog.author_list"))
    return render(report.entity, report.dependents)


# --- Genres ---

def _genre_dependency():
    return Dependency(get_store("book"), "genre", fields=("title", "summary"))


@catalog.route("/genres")
def genre_list():
    genres = get_store("genre").find_all(sort="name")
    return render_template("genre/list.html", title="Genre List", genre_list=genres)


@catalog.route("/genre/<int:genre_id>")
def genre_detail(genre_id):
    genres, books = get_store("genre"), get_store("book")
    results = fan_out({
        "genre": lambda: genres.find_by_id(genre_id),
        "genre_books": lambda: books.find({"genre": genre_id}, fields=("title", "summary"), sort="title"),
    })
    genre = _found(results["genre"], "Genre", genre_id, "genre_detail")
    return render_template(
        "genre/detail.html", title="Genre Detail", genre=genre, genre_books=results["genre_books"]
    )


@catalog.route("/genre/create", methods=["GET", "POST"])
def genre_create():
    """
    Create a genre. Submitting a name that already exists redirects to the
    existing genre instead of adding a second one.
    """
    if request.method == "POST":
        outcome = workflow.create_unique(get_store("genre"), request.form, GENRE_FIELDS, key="name")
        if outcome.committed:
            return redirect(entity_url("genre", outcome.record_id))
        return render_template(
            "genre/form.html", title="Create Genre", genre=outcome.candidate, errors=outcome.errors
        )

    return render_template("genre/form.html", title="Create Genre", genre=None, errors=[])


@catalog.route("/genre/<int:genre_id>/update", methods=["GET", "POST"])
def genre_update(genre_id):
    genres = get_store("genre")

    if request.method == "POST":
        outcome = workflow.update(
            genres, genre_id, request.form, GENRE_FIELDS, duplicate_message="Genre Name already exists."
        )
        if outcome.committed:
            return redirect(entity_url("genre", genre_id))
        return render_template(
            "genre/form.html", title="Update Genre", genre=outcome.candidate, errors=outcome.errors
        )

    genre = _found(genres.find_by_id(genre_id), "Genre", genre_id, "genre_update")
    return render_template("genre/form.html", title="Update Genre", genre=genre, errors=[])


@catalog.route("/genre/<int:genre_id>/delete", methods=["GET", "POST"])
def genre_delete(genre_id):
    genres = get_store("genre")

    def render(genre, books):
        return render_template("genre/delete.html", title="Delete Genre", genre=genre, genre_books=books)

    if request.method == "POST":
        outcome = reference_guard.guarded_delete(genres, genre_id, _genre_dependency())
        return _delete_response(outcome, "catalog.genre_list", "Genre", render)

    report = reference_guard.inspect(genres, genre_id, _genre_dependency())
    if report.entity is None:
        return redirect(url_for("catalog.genre_list"))
    return render(report.entity, report.dependents)


# --- Books ---

def _book_dependency():
    return Dependency(get_store("bookinstance"), "book")


def _book_form(title: str, book, errors, book_id=None):
    """
    Render the book form with author and genre options fetched concurrently.

    With book_id, the book itself is fetched alongside the options (404 if
    it does not exist).
    """
    books, authors, genres = get_store("book"), get_store("author"), get_store("genre")
    queries = {
        "authors": lambda: authors.find_all(sort=("last_name", "first_name")),
        "genres": lambda: genres.find_all(sort="name"),
    }
    if book_id is not None:
        queries["book"] = lambda: books.find_by_id(book_id)

    results = fan_out(queries)
    if book_id is not None:
        book = _found(results["book"], "Book", book_id, "book_update")
    selected = book["genre"] if book else []

    return render_template(
        "book/form.html",
        title=title,
        book=book,
        authors=results["authors"],
        genres=mark_checked(results["genres"], selected),
        errors=errors,
    )


@catalog.route("/books")
def book_list():
    books = get_store("book").find_all(sort="title", populate=("author",))
    return render_template("book/list.html", title="Book List", book_list=books)


@catalog.route("/book/<int:book_id>")
def book_detail(book_id):
    """
    Show a book with its author, genres and copies.
    """
    books, instances = get_store("book"), get_store("bookinstance")
    results = fan_out({
        "book": lambda: books.find_by_id(book_id, populate=("author", "genre")),
        "book_instances": lambda: instances.find({"book": book_id}),
    })
    book = _found(results["book"], "Book", book_id, "book_detail")
    return render_template(
        "book/detail.html", title="Book Detail", book=book, book_instances=results["book_instances"]
    )


@catalog.route("/book/create", methods=["GET", "POST"])
def book_create():
    if request.method == "POST":
        outcome = workflow.create(get_store("book"), request.form, BOOK_FIELDS)
        if outcome.committed:
            return redirect(entity_url("book", outcome.record_id))
        return _book_form("Create Book", outcome.candidate, outcome.errors)

    return _book_form("Create Book", None, [])


@catalog.route("/book/<int:book_id>/update", methods=["GET", "POST"])
def book_update(book_id):
    books = get_store("book")

    if request.method == "POST":
        outcome = workflow.update(books, book_id, request.form, BOOK_FIELDS)
        if outcome.committed:
            return redirect(entity_url("book", book_id))
        return _book_form("Update Book", outcome.candidate, outcome.errors)

    return _book_form("Update Book", None, [], book_id=book_id)


@catalog.route("/book/<int:book_id>/delete", methods=["GET", "POST"])
def book_delete(book_id):
    """
    Books with copies cannot be deleted; the copies are listed instead.
    """
    books = get_store("book")

    def render(book, book_instances):
        return render_template("book/delete.html", title="Delete Book", book=book, book_instances=book_instances)

    if request.method == "POST":
        outcome = reference_guard.guarded_delete(books, book_id, _book_dependency())
        return _delete_response(outcome, "catalog.book_list", "Book", render)

    report = reference_guard.inspect(books, book_id, _book_dependency())
    if report.entity is None:
        return redirect(url_for("catalog.book_list"))
    return render(report.entity, report.dependents)


@catalog.route("/book/summary")
def book_summary():
    """
    Look up a summary on Open Library for the ISBN typed into the book form.
    """
    isbn = normalize_isbn(request.args.get("isbn", ""))
    summary = fetch_summary_by_isbn(isbn)
    if summary is None:
        return jsonify({"isbn": isbn, "summary": None}), 404
    return jsonify({"isbn": isbn, "summary": summary})


# --- Book instances ---

def _book_instance_form(title: str, book_instance, errors, bookinstance_id=None):
    books, instances = get_store("book"), get_store("bookinstance")
    queries = {"books": lambda: books.find_all(sort="title")}
    if bookinstance_id is not None:
        queries["book_instance"] = lambda: instances.find_by_id(bookinstance_id)

    results = fan_out(queries)
    if bookinstance_id is not None:
        book_instance = _found(
            results["book_instance"], "Book Instance", bookinstance_id, "bookinstance_update"
        )

    return render_template(
        "bookinstance/form.html",
        title=title,
        book_instance=book_instance,
        books=results["books"],
        status_options=status_options(),
        errors=errors,
    )


@catalog.route("/bookinstances")
def bookinstance_list():
    instances = get_store("bookinstance").find_all(populate=("book",))
    return render_template("bookinstance/list.html", title="Book Instance List", bookinstance_list=instances)


@catalog.route("/bookinstance/<int:bookinstance_id>")
def bookinstance_detail(bookinstance_id):
    instance = get_store("bookinstance").find_by_id(bookinstance_id, populate=("book",))
    instance = _found(instance, "Book Instance", bookinstance_id, "bookinstance_detail")
    return render_template("bookinstance/detail.html", title="Book Instance Detail", book_instance=instance)


@catalog.route("/bookinstance/create", methods=["GET", "POST"])
def bookinstance_create():
    if request.method == "POST":
        outcome = workflow.create(get_store("bookinstance"), request.form, BOOK_INSTANCE_FIELDS)
        if outcome.committed:
            return redirect(entity_url("bookinstance", outcome.record_id))
        return _book_instance_form("Create Book Instance", outcome.candidate, outcome.errors)

    return _book_instance_form("Create Book Instance", None, [])


@catalog.route("/bookinstance/<int:bookinstance_id>/update", methods=["GET", "POST"])
def bookinstance_update(bookinstance_id):
    instances = get_store("bookinstance")

    if request.method == "POST":
        outcome = workflow.update(instances, bookinstance_id, request.form, BOOK_INSTANCE_FIELDS)
        if outcome.committed:
            return redirect(entity_url("bookinstance", bookinstance_id))
        return _book_instance_form("Update Book Instance", outcome.candidate, outcome.errors)

    return _book_instance_form("Update Book Instance", None, [], bookinstance_id=bookinstance_id)


@catalog.route("/bookinstance/<int:bookinstance_id>/delete", methods=["GET", "POST"])
def bookinstance_delete(bookinstance_id):
    """
    Copies are leaves: nothing references them, so delete is unconditional.
    """
    instances = get_store("bookinstance")

    if request.method == "POST":
        outcome = reference_guard.unguarded_delete(instances, bookinstance_id)
        return _delete_response(outcome, "catalog.bookinstance_list", "Book Instance", None)

    instance = instances.find_by_id(bookinstance_id, populate=("book",))
    if instance is None:
        return redirect(url_for("catalog.bookinstance_list"))
    return render_template("bookinstance/delete.html", title="Delete Book Instance", book_instance=instance)
