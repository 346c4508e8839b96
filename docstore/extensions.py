# docstore/extensions.py
from flask import current_app
from flask_cors import CORS

from .storage.filesystem import CollectionStore

# CORS is a real Flask extension (keeps init_app)
cors = CORS()


def init_collections(app) -> CollectionStore:
    store = CollectionStore(app.config["COLLECTIONS_ROOT"])
    app.extensions["collections"] = store
    return store


def collections() -> CollectionStore:
    """The CollectionStore of the current app."""
    return current_app.extensions["collections"]
