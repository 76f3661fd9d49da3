def test_genre_list(client, stores):
    stores["genre"].insert({"name": "Poetry"})
    stores["genre"].insert({"name": "Drama"})

    body = client.get("/catalog/genres").get_data(as_text=True)

    assert body.index("Drama") < body.index("Poetry")


def test_genre_detail_lists_books(client, genre_id, book_id):
    response = client.get(f"/catalog/genre/{genre_id}")

    assert response.status_code == 200
    assert "The Name of the Wind" in response.get_data(as_text=True)


def test_genre_detail_missing_is_404(client):
    assert client.get("/catalog/genre/5").status_code == 404


def test_create_genre(client, stores):
    response = client.post("/catalog/genre/create", data={"name": "  Science Fiction "})

    [genre] = stores["genre"].find_all()
    assert genre["name"] == "Science Fiction"
    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"/catalog/genre/{genre['id']}")


def test_create_existing_name_redirects_to_existing(client, stores, genre_id):
    response = client.post("/catalog/genre/create", data={"name": "Fantasy"})

    assert response.status_code == 302
    assert response.headers["Location"].endswith(f"/catalog/genre/{genre_id}")
    assert stores["genre"].count() == 1


def test_create_blank_name_rejected(client, stores):
    response = client.post("/catalog/genre/create", data={"name": ""})

    assert response.status_code == 200
    assert "Genre Name is required." in response.get_data(as_text=True)
    assert stores["genre"].count() == 0


def test_update_genre(client, stores, genre_id):
    response = client.post(f"/catalog/genre/{genre_id}/update", data={"name": "High Fantasy"})

    assert response.status_code == 302
    assert stores["genre"].find_by_id(genre_id)["name"] == "High Fantasy"


def test_update_to_taken_name_is_rejected(client, stores, genre_id):
    other = stores["genre"].insert({"name": "Horror"})

    response = client.post(f"/catalog/genre/{other}/update", data={"name": "Fantasy"})

    assert response.status_code == 200
    assert "Genre Name already exists." in response.get_data(as_text=True)
    assert stores["genre"].find_by_id(other)["name"] == "Horror"


def test_update_form_missing_is_404(client):
    assert client.get("/catalog/genre/5/update").status_code == 404


def test_delete_blocked_by_books_in_genre(client, stores, genre_id, book_id):
    response = client.post(f"/catalog/genre/{genre_id}/delete")

    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert "Delete the following books" in body
    assert "The Name of the Wind" in body
    assert stores["genre"].find_by_id(genre_id) is not None


def test_delete_not_blocked_by_author_field(client, stores, author_id):
    # A book whose author id happens to equal the genre id must not block.
    genre = stores["genre"].insert({"name": "Essays"})
    stores["book"].insert({"title": "Other", "author": genre, "summary": "s", "isbn": "9", "genre": []})

    response = client.post(f"/catalog/genre/{genre}/delete")

    assert response.status_code == 302
    assert stores["genre"].find_by_id(genre) is None


def test_delete_missing_genre_redirects(client):
    response = client.get("/catalog/genre/5/delete")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/catalog/genres")
