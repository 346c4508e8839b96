import json
import logging
import os
import threading
import uuid
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Type

from .entry import ID_KEY, NIL_ID, E, Entry, UntypedEntry, from_document, new_id, to_document
from .errors import (
    EntryDoesNotExistError,
    EntryNotParsableError,
    InvalidCollectionNameError,
    InvalidEntryFileError,
)
from .filters import compile_filter

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".json"


def validate_collection_name(name: str) -> str:
    if not isinstance(name, str) or name in ("", ".", ".."):
        raise InvalidCollectionNameError(name)
    if any(ch in name for ch in ("/", "\\", "\0")):
        raise InvalidCollectionNameError(name)
    return name


def _check_limit(limit: int):
    if limit < 0:
        raise ValueError("limit must be zero (unbounded) or positive")


@dataclass(frozen=True)
class CollectionInfo:
    name: str
    path: str
    entries: int


class FilesystemCollection:
    """A named collection stored as ``<root>/<name>/<id>.json`` files.

    Every operation holds the collection lock from its first filesystem call
    to its last. Get instances through ``CollectionStore.collection`` so that
    all callers of one name share the same lock.

    Listing order is whatever the filesystem returns.
    """

    def __init__(self, name: str, root):
        self.name = validate_collection_name(name)
        self.root = Path(root)
        self.directory = self.root / self.name
        self._lock = threading.Lock()

    def __repr__(self):
        return f"FilesystemCollection({self.name!r}, {str(self.root)!r})"

    def get_name(self) -> str:
        return self.name

    def _path(self, entry_id: uuid.UUID) -> Path:
        return self.directory / f"{entry_id}{ENTRY_SUFFIX}"

    def _entry_files(self) -> List[Path]:
        try:
            return [p for p in self.directory.iterdir() if p.is_file()]
        except FileNotFoundError:
            return []

    def _ids(self) -> List[uuid.UUID]:
        ids = []
        for path in self._entry_files():
            try:
                entry_id = uuid.UUID(path.stem)
            except ValueError:
                entry_id = None
            if path.suffix != ENTRY_SUFFIX or entry_id is None or str(entry_id) != path.stem:
                raise InvalidEntryFileError(path.name, self.name)
            ids.append(entry_id)
        return ids

    def _load_entry(self, entry_id: uuid.UUID, entry_type: Type[E]) -> E:
        path = self._path(entry_id)
        try:
            with path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            raise EntryDoesNotExistError() from None
        except ValueError as e:
            logger.warning("Unreadable entry file %s: %s", path, e)
            raise EntryNotParsableError(entry_id, self.name) from e

        try:
            return from_document(document, entry_type)
        except (TypeError, ValueError) as e:
            logger.warning("Entry %s does not fit %s: %s", path, entry_type.__name__, e)
            raise EntryNotParsableError(entry_id, self.name) from e

    def persist(self, entry: Entry) -> uuid.UUID:
        """Write the entry, assigning a random identifier if it has none.

        The identifier is written in canonical form and set on ``entry`` only
        once the file is written.
        """
        with self._lock:
            entry_id = entry.get_id()
            if entry_id == NIL_ID:
                entry_id = new_id()

            document = to_document(entry)
            document[ID_KEY] = str(entry_id)
            payload = json.dumps(document, indent=2, ensure_ascii=False)
            self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd = os.open(self._path(entry_id), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            entry.set_id(entry_id)

        logger.debug("Persisted %s/%s", self.name, entry_id)
        return entry_id

    def delete(self, entry: Entry):
        with self._lock:
            entry_id = entry.get_id()
            try:
                self._path(entry_id).unlink()
            except FileNotFoundError:
                raise EntryDoesNotExistError() from None

        logger.debug("Deleted %s/%s", self.name, entry_id)

    def load(self, entry_id: uuid.UUID, entry_type: Type[E] = UntypedEntry) -> E:
        with self._lock:
            return self._load_entry(entry_id, entry_type)

    def load_all(self, entry_type: Type[E] = UntypedEntry, limit: int = 0) -> List[E]:
        """Return up to ``limit`` entries (all of them when ``limit`` is 0).

        A single undecodable file fails the whole call.
        """
        _check_limit(limit)
        entries: List[E] = []
        with self._lock:
            for entry_id in self._ids():
                if limit and len(entries) >= limit:
                    break
                entries.append(self._load_entry(entry_id, entry_type))
        return entries

    def query(self, filter: Any, limit: int = 0, entry_type: Type[E] = UntypedEntry) -> List[E]:
        """Return up to ``limit`` entries passing ``filter``.

        ``limit`` counts matches, not scanned entries. See ``filters`` for the
        matching rules.
        """
        _check_limit(limit)
        compiled = compile_filter(filter)
        entries: List[E] = []
        with self._lock:
            for entry_id in self._ids():
                entry = self._load_entry(entry_id, entry_type)
                if not compiled.matches(entry):
                    continue
                entries.append(entry)
                if limit and len(entries) >= limit:
                    break
        return entries

    def count(self) -> int:
        """Number of entry files, without decoding them."""
        with self._lock:
            return sum(1 for p in self._entry_files() if p.suffix == ENTRY_SUFFIX)


class CollectionStore:
    """Registry of the collections under one storage root.

    Hands out a single ``FilesystemCollection`` per name for as long as any
    caller holds it, so its lock is shared by every concurrent caller.
    Instances nobody references are dropped.
    """

    def __init__(self, root):
        self.root = Path(root)
        self._collections = weakref.WeakValueDictionary()
        self._lock = threading.Lock()

    def collection(self, name: str) -> FilesystemCollection:
        with self._lock:
            found = self._collections.get(name)
            if found is None:
                found = FilesystemCollection(name, self.root)
                self._collections[name] = found
            return found

    def list_collections(self) -> List[CollectionInfo]:
        try:
            children = sorted(self.root.iterdir(), key=lambda p: p.name)
        except FileNotFoundError:
            return []

        infos = []
        for child in children:
            if not child.is_dir():
                continue
            try:
                collection = self.collection(child.name)
            except InvalidCollectionNameError:
                logger.warning("Skipping directory %s: not a valid collection name", child)
                continue
            infos.append(CollectionInfo(
                name=child.name,
                path=f"/{child.name}/",
                entries=collection.count(),
            ))
        return infos
