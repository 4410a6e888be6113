"""Host-environment collaborators for :class:`.SessionAccessor`."""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from .exceptions import InvalidCookie, InvalidSessionData, \
    StoreUnavailable, UnknownSession
from .services.store import SessionStore

logger = logging.getLogger(__name__)

XHR_HEADER = 'X-Requested-With'


def is_interactive_request(headers: Mapping[str, str]) -> bool:
    """
    Determine whether a request is a full page navigation.

    Background calls made with ``XMLHttpRequest`` identify themselves with the
    ``X-Requested-With`` header; anything else is treated as a page request.
    """
    requested_with = headers.get(XHR_HEADER) or ''
    return requested_with.lower() != 'xmlhttprequest'


class StoreHandle(object):
    """An open session: its ID, and its data as a single mapping."""

    def __init__(self, session_id: str, data: Dict[str, Any],
                 is_new: bool = False) -> None:
        self.session_id = session_id
        self.is_new = is_new
        self.modified = False
        self._data = data

    def read(self) -> Dict[str, Any]:
        """Get the whole session mapping."""
        return self._data

    def write(self, data: Mapping[str, Any]) -> None:
        """
        Replace the whole session mapping.

        Raises
        ------
        TypeError
            If ``data`` cannot be stored as JSON. The session is left as it
            was.

        """
        try:
            json.dumps(data)
        except (TypeError, ValueError) as e:
            raise TypeError(f'Session data is not JSON serializable: {e}') \
                from e
        self._data = dict(data)
        self.modified = True


class RequestStoreProvider(object):
    """
    Opens the session identified by a request's cookie.

    Parameters
    ----------
    store : :class:`.SessionStore`
    cookie_name : str
        Name of the cookie that carries the session ID.
    cookies : Mapping
        The cookies sent with the request.

    """

    def __init__(self, store: SessionStore, cookie_name: str,
                 cookies: Mapping[str, str]) -> None:
        self.store = store
        self.handle: Optional[StoreHandle] = None
        self._cookie = cookies.get(cookie_name)

    def is_already_active(self) -> bool:
        """Whether the session was opened earlier in this request."""
        return self.handle is not None

    def is_resumable(self) -> bool:
        """Whether a session is open, or the request carries a session cookie."""
        return self.is_already_active() or bool(self._cookie)

    def resume_or_open(self) -> Optional[StoreHandle]:
        """
        Resume the session named by the cookie, or start a new one.

        A cookie that cannot be read, or that names a session which no longer
        exists, is ignored and a new session is started in its place.

        Returns
        -------
        :class:`.StoreHandle` or None
            ``None`` if the session store is unavailable.

        """
        if self.handle is not None:
            return self.handle
        try:
            self.handle = self._resume() or self._open()
        except StoreUnavailable as e:
            logger.error('Could not open session: %s', e)
            return None
        return self.handle

    def store_id(self) -> str:
        """Get the ID of the open session, if there is one."""
        return self.handle.session_id if self.handle is not None else ''

    def _resume(self) -> Optional[StoreHandle]:
        if not self._cookie:
            return None
        try:
            session_id = self.store.unpack_cookie(self._cookie)
            data = self.store.load(session_id)
        except InvalidCookie as e:
            logger.debug('Invalid session cookie: %s', e)
            return None
        except UnknownSession as e:
            logger.debug('No session available: %s', e)
            return None
        except InvalidSessionData as e:
            logger.debug('Discarding unreadable session: %s', e)
            return None
        logger.debug('Resumed session %s', session_id)
        return StoreHandle(session_id, data)

    def _open(self) -> StoreHandle:
        return StoreHandle(self.store.create(), {}, is_new=True)
