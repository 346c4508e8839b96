"""Flask session interface that keeps session data in a collection.

The cookie only carries the signed session identifier. The session values are
serialized and signed with itsdangerous and stored as a ``StoredSession``
entry, normally in a ``RemoteCollection`` so several services can share
sessions through one storage service. Any collection offering
``persist``/``load``/``delete`` works.

Cookie name, domain, path, flags and lifetime come from the Flask app's
session settings.
"""
import logging
import uuid
from dataclasses import dataclass

from flask.sessions import SessionInterface, SessionMixin
from itsdangerous import BadSignature, URLSafeTimedSerializer
from werkzeug.datastructures import CallbackDict

from ..storage.entry import BaseEntry
from ..storage.errors import EntryDoesNotExistError

logger = logging.getLogger(__name__)


@dataclass
class StoredSession(BaseEntry):
    data: str = ""


class RemoteSession(CallbackDict, SessionMixin):
    def __init__(self, initial=None, sid: uuid.UUID | None = None, new: bool = False):
        def on_update(self):
            self.modified = True

        super().__init__(initial, on_update)
        self.sid = sid
        self.new = new
        self.modified = False


class RemoteSessionInterface(SessionInterface):
    session_class = RemoteSession

    def __init__(self, collection, secret_keys=None, salt: str = "docstore-session"):
        """``secret_keys`` defaults to the app's ``SECRET_KEY``; pass several
        keys to rotate them (the last one signs, all of them verify)."""
        self.collection = collection
        self.secret_keys = list(secret_keys or [])
        self.salt = salt

    def _serializer(self, app, purpose: str) -> URLSafeTimedSerializer | None:
        keys = self.secret_keys or ([app.secret_key] if app.secret_key else [])
        if not keys:
            return None
        return URLSafeTimedSerializer(keys, salt=f"{self.salt}:{self.get_cookie_name(app)}:{purpose}")

    def _max_age(self, app) -> int:
        return int(app.permanent_session_lifetime.total_seconds())

    def open_session(self, app, request):
        id_serializer = self._serializer(app, "id")
        if id_serializer is None:
            return None

        cookie = request.cookies.get(self.get_cookie_name(app))
        if not cookie:
            return self.session_class(new=True)

        try:
            sid = uuid.UUID(id_serializer.loads(cookie, max_age=self._max_age(app)))
        except (BadSignature, ValueError):
            return self.session_class(new=True)

        try:
            stored = self.collection.load(sid, StoredSession)
        except EntryDoesNotExistError:
            return self.session_class(new=True)

        try:
            values = self._serializer(app, "data").loads(stored.data, max_age=self._max_age(app))
        except BadSignature:
            logger.warning("Discarding session %s: stored data failed verification", sid)
            return self.session_class(new=True)
        return self.session_class(values, sid=sid)

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)
        secure = self.get_cookie_secure(app)
        samesite = self.get_cookie_samesite(app)
        httponly = self.get_cookie_httponly(app)

        if not session:
            if session.modified:
                if session.sid is not None:
                    self._erase(session.sid)
                response.delete_cookie(
                    name, domain=domain, path=path, secure=secure, samesite=samesite, httponly=httponly
                )
                response.vary.add("Cookie")
            return

        if not self.should_set_cookie(app, session):
            return

        if session.sid is None:
            session.sid = uuid.uuid4()
        stored = StoredSession(id=session.sid, data=self._serializer(app, "data").dumps(dict(session)))
        self.collection.persist(stored)

        response.set_cookie(
            name,
            self._serializer(app, "id").dumps(str(session.sid)),
            expires=self.get_expiration_time(app, session),
            httponly=httponly,
            domain=domain,
            path=path,
            secure=secure,
            samesite=samesite,
        )
        response.vary.add("Cookie")

    def _erase(self, sid: uuid.UUID):
        try:
            self.collection.delete(StoredSession(id=sid))
        except EntryDoesNotExistError:
            logger.debug("Session %s was already gone", sid)
