"""
Request-scoped access to the visitor's session data.

:class:`SessionAccessor` opens (or resumes) the underlying session store at
most once per request, and then exposes get/set/add/remove over the nested
session mapping. It also manages the flash namespace: values set with
:meth:`SessionAccessor.set_flash` are readable with
:meth:`SessionAccessor.get_flash` on the *next* interactive page request only.

Every operation has two entry points. The plain names take a dotted string
(``session.get('user.id')``); the ``_in`` variants take a sequence of path
segments (``session.get_in(['user', 'id'])``), which is the way to address
keys that themselves contain a dot.

The accessor does not know how the store is persisted. It is given a store
provider and a request classifier; see :mod:`pagesession.provider` for the
ones used by the Flask extension.
"""

import copy
import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from . import paths

logger = logging.getLogger(__name__)

FLASH_KEY = '__flash__'
"""
Reserved top-level session key that holds flash values.

Application code must not use this as a top-level key of its own.
"""

FLASH_NEXT = (FLASH_KEY, 'next')
"""Values set during this request, to be shown on the next one."""

FLASH_NOW = (FLASH_KEY, 'now')
"""Values carried over from the previous request."""


class SessionAccessor(object):
    """
    Convenience accessor for one request's session.

    Parameters
    ----------
    provider : object
        Store provider. Must implement ``is_already_active()``,
        ``is_resumable()``, ``resume_or_open()`` (returning a store handle
        with ``read()`` and ``write(data)``, or ``None`` on failure),
        ``store_id()``, and a ``handle`` attribute holding the handle once it
        is active.
    is_interactive : callable
        Returns ``True`` if the current request is a full page navigation
        rather than a background (XHR) call. Flash values only rotate on
        interactive requests.

    """

    def __init__(self, provider: Any, is_interactive: Callable[[], bool]) \
            -> None:
        self._provider = provider
        self._is_interactive = is_interactive
        self._handle: Any = None
        self._started: Optional[bool] = None

    def id(self) -> str:
        """Start the session if needed, and get its identifier."""
        return self._provider.store_id() if self.started() else ''

    def set(self, key: str, value: Any) -> None:
        """
        Set the ``value`` at a dotted ``key``.

        .. code-block:: python

           session.set('user.id', 100)

        """
        self.set_in(paths.split(key), value)

    def set_in(self, path: Sequence[str], value: Any) -> None:
        """
        Set the ``value`` at ``path``. ``None`` is never stored.

        Raises
        ------
        ValueError
            If ``path`` is empty, whether or not the session can be started.
        TypeError
            If ``value`` cannot be stored as JSON.

        """
        _require_key(path)
        if value is None or not self.started():
            return
        value = copy.deepcopy(value)
        self._write(paths.upsert(self._read(), tuple(path), value))

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get the value at a dotted ``key``, or ``default`` if there isn't one.

        .. code-block:: python

           session.get('user')     # {'id': 100, 'name': 'Joe Bloggs'}

        """
        return self.get_in(paths.split(key), default)

    def get_in(self, path: Sequence[str], default: Any = None) -> Any:
        """Get the value at ``path``, or ``default`` if there isn't one."""
        if not self._provider.is_resumable() or not self.started():
            return default
        value = paths.lookup(self._read(), tuple(path), default)
        if value is not default and isinstance(value, (Mapping, list)):
            return copy.deepcopy(value)
        return value

    def add(self, key: str, values: Mapping[str, Any]) -> None:
        """
        Merge ``values`` into the mapping at a dotted ``key``.

        Keys that are already present are kept as they are; only missing keys
        are added. A non-mapping value at ``key`` is replaced.

        .. code-block:: python

           session.add('user', {'name': 'Joe Bloggs'})

        """
        self.add_in(paths.split(key), values)

    def add_in(self, path: Sequence[str], values: Mapping[str, Any]) -> None:
        """Merge ``values`` into the mapping at ``path``; existing keys win."""
        _require_key(path)
        current = self.get_in(path)
        if not isinstance(current, Mapping):
            current = {}
        self.set_in(path, paths.merge_missing(current, values))

    def remove(self, *keys: str) -> None:
        """Remove each of the dotted ``keys``."""
        self.remove_in(*[paths.split(key) for key in keys])

    def remove_in(self, *targets: Sequence[str]) -> None:
        """Remove the deepest key of each path in ``targets``."""
        if not self._provider.is_resumable() or not self.started():
            return
        data = self._read()
        pruned = data
        for path in targets:
            pruned = paths.discard(pruned, tuple(path))
        if pruned is not data:
            self._write(pruned)

    def set_flash(self, key: str, value: Any) -> None:
        """
        Set a flash value that will be available on the next page request.

        .. code-block:: python

           session.set_flash('message', 'Hello world!')

        """
        self.set_flash_in(paths.split(key), value)

    def set_flash_in(self, path: Sequence[str], value: Any) -> None:
        """Set a flash value at ``path`` for the next page request."""
        self.set_in(paths.join(FLASH_NEXT, path), value)

    def get_flash(self, key: str, default: Any = None) -> Any:
        """
        Get a flash value that was set on the previous page request.

        .. code-block:: python

           session.get_flash('message')    # 'Hello world!'

        """
        return self.get_flash_in(paths.split(key), default)

    def get_flash_in(self, path: Sequence[str], default: Any = None) -> Any:
        """Get a flash value at ``path`` set on the previous page request."""
        return self.get_in(paths.join(FLASH_NOW, path), default)

    def keep_flash(self) -> None:
        """
        Carry this request's flash values over to the next page request.

        Values already set for the next request are not overwritten. This is
        not necessary for XHR requests, which never rotate flash values.
        """
        now = self.get_in(FLASH_NOW)
        if now and isinstance(now, Mapping):
            self.add_in(FLASH_NEXT, now)

    def started(self) -> bool:
        """
        Start a new session, or resume an existing one.

        This is decided once per accessor. The first time the session becomes
        available on an interactive request, flash values rotate: pending
        ``next`` values become ``now``, and a namespace that was already
        shown is dropped.
        """
        if self._started is None:
            self._started = self._open()
            if self._started and self._is_interactive():
                self._rotate_flash()
        return self._started

    def _open(self) -> bool:
        if self._provider.is_already_active():
            self._handle = self._provider.handle
        else:
            self._handle = self._provider.resume_or_open()
        if self._handle is None:
            logger.warning('Session store unavailable; session disabled')
            return False
        return True

    def _rotate_flash(self) -> None:
        data = self._read()
        flash = data.get(FLASH_KEY)
        if not isinstance(flash, Mapping):
            if flash is not None:
                logger.debug('Dropping malformed flash namespace')
                self._write(paths.discard(data, (FLASH_KEY,)))
            return
        pending = flash.get('next')
        if pending is not None:
            logger.debug('Rotating flash values')
            self._write(paths.upsert(data, (FLASH_KEY,), {'now': pending}))
        else:
            logger.debug('Flash values already shown; clearing')
            self._write(paths.discard(data, (FLASH_KEY,)))

    def _read(self) -> Mapping[str, Any]:
        data: Mapping[str, Any] = self._handle.read()
        return data

    def _write(self, data: Mapping[str, Any]) -> None:
        self._handle.write(data)


def _require_key(path: Sequence[str]) -> None:
    if not path:
        raise ValueError('A value needs a non-empty path')
