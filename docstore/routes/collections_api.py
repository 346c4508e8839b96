import re
import uuid

from flask import Blueprint, current_app, jsonify, request

from ..extensions import collections
from ..storage.entry import UntypedEntry
from ..storage.errors import CollectionError, EntryDoesNotExistError, InvalidCollectionNameError

bp = Blueprint("collections_api", __name__)

LIMIT_PARAM = "limit"

_NESTED_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]+\])+)$")
_NESTED_PART = re.compile(r"\[([^\[\]]+)\]")


def unflatten_filter(params) -> dict:
    """Build a filter mapping from query pairs; ``a[b]=v`` nests as ``{a: {b: v}}``."""
    filter = {}
    for key, value in params:
        match = _NESTED_KEY.match(key)
        path = [match.group(1), *_NESTED_PART.findall(match.group(2))] if match else [key]
        node = filter
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[path[-1]] = value
    return filter


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _parse_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


@bp.errorhandler(InvalidCollectionNameError)
def _invalid_collection(e):
    return _error(str(e), 400)


@bp.errorhandler(CollectionError)
@bp.errorhandler(OSError)
def _storage_failure(e):
    current_app.logger.exception("Storage failure on %s %s", request.method, request.path, exc_info=e)
    return _error("Internal Server Error", 500)


@bp.get("/")
def list_collections():
    return jsonify(collections().list_collections())


@bp.post("/<collection>")
def persist_entry(collection: str):
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        return _error("Invalid JSON", 400)

    entry = UntypedEntry(body)
    try:
        entry.get_id()
    except ValueError:
        return _error("Invalid ID", 400)

    entry_id = collections().collection(collection).persist(entry)
    return jsonify({"ID": str(entry_id)})


@bp.get("/<collection>")
def list_entries(collection: str):
    limit = 0
    limit_text = request.args.get(LIMIT_PARAM, "")
    if limit_text != "":
        try:
            limit = int(limit_text)
        except ValueError:
            return _error("Limit must be integer", 400)
        if limit < 0:
            return _error("Limit must not be negative", 400)

    filter = unflatten_filter((k, v) for k, v in request.args.items() if k != LIMIT_PARAM)
    target = collections().collection(collection)
    if filter:
        entries = target.query(filter, limit)
    else:
        entries = target.load_all(limit=limit)
    return jsonify(entries)


@bp.get("/<collection>/<entry_id>")
def get_entry(collection: str, entry_id: str):
    parsed = _parse_id(entry_id)
    if parsed is None:
        return _error("Invalid UUID", 400)

    try:
        entry = collections().collection(collection).load(parsed)
    except EntryDoesNotExistError:
        return _error("Not found", 404)
    return jsonify(entry)


@bp.delete("/<collection>/<entry_id>")
def delete_entry(collection: str, entry_id: str):
    parsed = _parse_id(entry_id)
    if parsed is None:
        return _error("Invalid UUID", 400)

    entry = UntypedEntry()
    entry.set_id(parsed)
    try:
        collections().collection(collection).delete(entry)
    except EntryDoesNotExistError:
        return _error("Not found", 404)
    return jsonify({"message": "OK"})
