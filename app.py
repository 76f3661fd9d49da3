"""
Local Library - a catalog admin built with Flask and SQLAlchemy.

Features:
- Authors, genres, books and book copies with list/detail pages
- Create and update forms with validation
- Deletes refused while other records still reference the target
- Book summary lookup from Open Library by ISBN
"""

import logging
import os

from flask import Flask, redirect, render_template, url_for
from werkzeug.exceptions import NotFound

import presenters
from catalog import catalog
from config import Config, basedir
from data_models import db, init_db
from entity_store import init_stores
from errors import StoreError


def create_app(test_config=None):
    """
    Application factory.

    Args:
        test_config: optional mapping applied on top of Config
            (tests use it for a throwaway database).
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.from_mapping(test_config)

    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))

    db.init_app(app)
    init_stores(app)
    presenters.register(app)
    app.register_blueprint(catalog)

    @app.route("/")
    def home():
        return redirect(url_for("catalog.index"))

    @app.errorhandler(NotFound)
    def not_found(error):
        return render_template("error.html", title="Not Found", message=error.description, status=404), 404

    @app.errorhandler(StoreError)
    def store_failure(error):
        app.logger.exception("store failure: %s", error)
        return render_template(
            "error.html", title="Error", message="The catalog could not be read or updated.", status=500
        ), 500

    return app


if __name__ == "__main__":
    os.makedirs(os.path.join(basedir, "data"), exist_ok=True)

    app = create_app()
    init_db(app)

    app.run(debug=True)
