import re
import threading
import uuid
from typing import Any, Dict, List, Type
from urllib.parse import unquote, urlsplit

import httpx

from ..storage.entry import ID_KEY, E, Entry, UntypedEntry, from_document, to_document
from ..storage.errors import EntryDoesNotExistError, EntryNotParsableError
from ..storage.filters import RejectingFilter, as_query_text, compile_filter

LIMIT_PARAM = "limit"

_LAST_SEGMENT = re.compile(r"/([^/]+)$")


def flatten_filter(filter: Any) -> Dict[str, str]:
    """Query parameters for the constrained fields of ``filter``.

    Wildcard fields (zero identifier, empty text, zero integers, datetimes and
    other unconstrained types) are left out, so the peer treats them as
    unconstrained just like a local query would. Nested fields become
    ``parent[child]`` keys.
    """
    params = {}
    for path, value in compile_filter(filter).constraints():
        key = path[0] + "".join(f"[{part}]" for part in path[1:])
        params[key] = as_query_text(value.value)
    return params


def _raise_for_status(r: httpx.Response, *, entry_request: bool = False):
    if entry_request and r.status_code == 404:
        raise EntryDoesNotExistError()
    try:
        r.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise httpx.HTTPStatusError(f"{e} body: {r.text}", request=e.request, response=e.response)


class RemoteCollection:
    """A collection served by a peer docstore instance.

    ``url`` is the collection URL, e.g. ``https://storage.local/books``; the
    last path segment is the collection name. Offers the same operations as
    ``FilesystemCollection``.
    """

    def __init__(self, url: str, *, timeout: float = 30.0,
                 transport: httpx.BaseTransport | None = None,
                 headers: dict | None = None):
        self.url = url.strip().rstrip("/")
        match = _LAST_SEGMENT.search(urlsplit(self.url).path)
        if not match:
            raise ValueError(f"Unable to extract collection name from {url}")
        self.name = unquote(match.group(1))
        self.timeout = timeout
        self.transport = transport
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._http: httpx.Client | None = None
        self._http_lock = threading.Lock()

    def __repr__(self):
        return f"RemoteCollection({self.url!r})"

    def get_name(self) -> str:
        return self.name

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def client(self) -> httpx.Client:
        """Shared httpx client, created on first use."""
        with self._http_lock:
            if self._http is None:
                self._http = httpx.Client(timeout=self.timeout, transport=self.transport, headers=self.headers)
            return self._http

    def close(self):
        with self._http_lock:
            if self._http is not None:
                self._http.close()
                self._http = None

    def _entry_url(self, entry_id: uuid.UUID) -> str:
        return f"{self.url}/{entry_id}"

    def _decode(self, document: Any, entry_type: Type[E], entry_id=None) -> E:
        if entry_id is None and isinstance(document, dict):
            entry_id = document.get(ID_KEY)
        try:
            return from_document(document, entry_type)
        except (TypeError, ValueError) as e:
            raise EntryNotParsableError(entry_id, self.name) from e

    def _get_list(self, params: Dict[str, str], entry_type: Type[E]) -> List[E]:
        if int(params[LIMIT_PARAM]) < 0:
            raise ValueError("limit must be zero (unbounded) or positive")
        r = self.client.get(self.url, params=params)
        _raise_for_status(r)
        documents = r.json()
        if not isinstance(documents, list):
            raise ValueError(f"Expected a list of entries from {self.url}, got {type(documents).__name__}")
        return [self._decode(doc, entry_type) for doc in documents]

    def persist(self, entry: Entry) -> uuid.UUID:
        r = self.client.post(self.url, json=to_document(entry))
        _raise_for_status(r)
        entry.set_id(uuid.UUID(r.json()[ID_KEY]))
        return entry.get_id()

    def delete(self, entry: Entry):
        r = self.client.delete(self._entry_url(entry.get_id()))
        _raise_for_status(r, entry_request=True)

    def load(self, entry_id: uuid.UUID, entry_type: Type[E] = UntypedEntry) -> E:
        r = self.client.get(self._entry_url(entry_id))
        _raise_for_status(r, entry_request=True)
        return self._decode(r.json(), entry_type, entry_id)

    def load_all(self, entry_type: Type[E] = UntypedEntry, limit: int = 0) -> List[E]:
        return self._get_list({LIMIT_PARAM: str(limit)}, entry_type)

    def query(self, filter: Any, limit: int = 0, entry_type: Type[E] = UntypedEntry) -> List[E]:
        if isinstance(compile_filter(filter), RejectingFilter):
            return []
        constraints = flatten_filter(filter)
        if LIMIT_PARAM in constraints:
            raise ValueError(f"'{LIMIT_PARAM}' cannot be used as a filter field over HTTP")
        return self._get_list({LIMIT_PARAM: str(limit), **constraints}, entry_type)
