"""
Redis-backed storage for page session data.

Each visitor's session is one JSON document, stored under a random session ID
with an expiry. The session ID travels to the browser in a cookie, as a signed
JSON web token, so that it cannot be forged or tampered with.
"""

import json
import logging
import uuid
from typing import Any, Mapping, Optional

from flask import Flask, current_app
import fakeredis
import jwt
import redis

from ..exceptions import InvalidCookie, InvalidSessionData, \
    StoreUnavailable, UnknownSession

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'pagesession.store'


class SessionStore(object):
    """
    Manages a connection to Redis.

    The StrictRedis instance is thread safe, and connections are attached at
    the time a command is executed, so one store can serve every request of an
    application. This class simply provides a container for configuration.
    """

    def __init__(self, host: str, port: int, db: int, secret: str,
                 duration: int = 7200, fake: bool = False) -> None:
        """Open the connection to Redis."""
        if fake:
            logger.debug('Using fake Redis for session storage')
            self.r = fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
        else:
            logger.debug('New Redis connection at %s, port %s', host, port)
            self.r = redis.StrictRedis(host=host, port=port, db=db)
        self._secret = secret
        self._duration = duration

    @property
    def duration(self) -> int:
        """Lifetime of a session, in seconds."""
        return self._duration

    def create(self) -> str:
        """
        Reserve a new, empty session.

        Returns
        -------
        str
            The new session ID.

        Raises
        ------
        :class:`.StoreUnavailable`

        """
        session_id = str(uuid.uuid4())
        try:
            self.r.set(session_id, json.dumps({}), ex=self._duration, nx=True)
        except redis.exceptions.ConnectionError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e
        except Exception as e:
            raise StoreUnavailable(f'Failed to create: {e}') from e
        logger.debug('Created session %s', session_id)
        return session_id

    def load(self, session_id: str) -> dict:
        """
        Get the data of a session.

        Raises
        ------
        :class:`.UnknownSession`
            If there is no such session, e.g. because it expired.
        :class:`.InvalidSessionData`
            If the stored document is not a JSON object.
        :class:`.StoreUnavailable`

        """
        try:
            raw: Optional[bytes] = self.r.get(session_id)
        except redis.exceptions.ConnectionError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e
        except Exception as e:
            raise StoreUnavailable(f'Failed to load: {e}') from e
        if not raw:
            raise UnknownSession(f'Failed to find session {session_id}')
        try:
            data = json.loads(raw)
        except json.decoder.JSONDecodeError as e:
            raise InvalidSessionData('Corrupted session data') from e
        if not isinstance(data, dict):
            raise InvalidSessionData('Session data is not a JSON object')
        return data

    def save(self, session_id: str, data: Mapping[str, Any]) -> None:
        """
        Write the data of a session, and reset its expiry.

        Raises
        ------
        :class:`.StoreUnavailable`
        TypeError
            If ``data`` cannot be stored as JSON.

        """
        payload = json.dumps(data)
        try:
            self.r.set(session_id, payload, ex=self._duration)
        except redis.exceptions.ConnectionError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e
        except Exception as e:
            raise StoreUnavailable(f'Failed to save: {e}') from e

    def touch(self, session_id: str) -> None:
        """
        Reset the expiry of a session without changing its data.

        Raises
        ------
        :class:`.StoreUnavailable`

        """
        try:
            self.r.expire(session_id, self._duration)
        except redis.exceptions.ConnectionError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e
        except Exception as e:
            raise StoreUnavailable(f'Failed to touch: {e}') from e

    def delete(self, session_id: str) -> None:
        """
        Delete a session in the key-value store by ID.

        Raises
        ------
        :class:`.StoreUnavailable`

        """
        try:
            self.r.delete(session_id)
        except redis.exceptions.ConnectionError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e
        except Exception as e:
            raise StoreUnavailable(f'Failed to delete: {e}') from e

    def generate_cookie(self, session_id: str) -> str:
        """Generate a cookie value that identifies ``session_id``."""
        return jwt.encode({'session_id': session_id}, self._secret,
                          algorithm='HS256')

    def unpack_cookie(self, cookie: str) -> str:
        """
        Get the session ID from a cookie value.

        Raises
        ------
        :class:`.InvalidCookie`
            If the cookie is malformed, or was signed with another secret.

        """
        try:
            data = jwt.decode(cookie, self._secret, algorithms=['HS256'])
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidCookie('Session cookie is malformed') from e
        session_id = data.get('session_id')
        if not session_id or not isinstance(session_id, str):
            raise InvalidCookie('Session cookie has no session ID')
        return session_id


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    app.config.setdefault('REDIS_HOST', 'localhost')
    app.config.setdefault('REDIS_PORT', '6379')
    app.config.setdefault('REDIS_DATABASE', '0')
    app.config.setdefault('REDIS_FAKE', False)
    app.config.setdefault('JWT_SECRET', 'foosecret')
    app.config.setdefault('SESSION_DURATION', '7200')


def get_redis_session(app: Optional[Flask] = None) -> SessionStore:
    """Get a new session store configured for ``app``."""
    config = (app or current_app).config
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    fake = bool(config.get('REDIS_FAKE', False))
    secret = config['JWT_SECRET']
    duration = int(config.get('SESSION_DURATION', '7200'))
    return SessionStore(host, port, db, secret, duration, fake=fake)


def current_store() -> SessionStore:
    """Get/create the :class:`.SessionStore` for the current application."""
    extensions = current_app.extensions
    if EXTENSION_KEY not in extensions:
        extensions[EXTENSION_KEY] = get_redis_session()
    store: SessionStore = extensions[EXTENSION_KEY]
    return store
