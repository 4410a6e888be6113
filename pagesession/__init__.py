"""
Per-visitor page sessions with flash values, for Flask applications.

A page session is a nested key-value mapping kept server-side (in Redis) for
each visitor, and identified by a signed cookie. Views get at it through
:func:`current_session` (or the :data:`session` proxy), which returns a
:class:`.SessionAccessor` for the current request:

.. code-block:: python

   from flask import Flask, redirect
   from pagesession import PageSession, session


   app = Flask('someapp')
   PageSession(app)


   @app.route('/save', methods=['POST'])
   def save():
       session.set('user.id', 100)
       session.set_flash('message', 'Saved!')
       return redirect('/')


   @app.route('/')
   def index():
       return session.get_flash('message', '')

The session is only opened when it is first used during a request. After the
request, any changes are written back to the store and the session cookie is
refreshed.
"""

import logging
from functools import partial
from typing import Optional

from flask import Flask, Response, current_app, g, request
from werkzeug.local import LocalProxy

from .accessor import SessionAccessor
from .exceptions import StoreUnavailable
from .provider import RequestStoreProvider, is_interactive_request
from .services import store

logger = logging.getLogger(__name__)


class PageSession(object):
    """
    Attaches a page session to each request.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from pagesession import PageSession


       def create_web_app() -> Flask:
          app = Flask('someapp')
          app.config.from_pyfile('config.py')
          PageSession(app)
          return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        """
        Initialize ``app``, if given.

        Parameters
        ----------
        app : :class:`Flask`

        """
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Set configuration defaults and attach :meth:`.save_session`.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        store.init_app(app)
        app.config.setdefault('PAGE_SESSION_COOKIE_NAME', 'PAGE_SESSION_ID')
        app.config.setdefault('PAGE_SESSION_COOKIE_DOMAIN', None)
        app.config.setdefault('PAGE_SESSION_COOKIE_SECURE', False)
        app.after_request(self.save_session)

    def save_session(self, response: Response) -> Response:
        """
        Write back the session data, and refresh the session cookie.

        Nothing happens if the session was not opened during the request.
        """
        provider: Optional[RequestStoreProvider] = \
            g.pop('page_session_provider', None)
        if provider is None or provider.handle is None:
            return response

        handle = provider.handle
        try:
            if handle.modified:
                provider.store.save(handle.session_id, handle.read())
            else:
                provider.store.touch(handle.session_id)
        except StoreUnavailable as e:
            logger.error('Could not save session %s: %s',
                         handle.session_id, e)
            return response

        config = current_app.config
        response.set_cookie(
            config['PAGE_SESSION_COOKIE_NAME'],
            provider.store.generate_cookie(handle.session_id),
            max_age=provider.store.duration,
            domain=config['PAGE_SESSION_COOKIE_DOMAIN'],
            secure=bool(config['PAGE_SESSION_COOKIE_SECURE']),
            httponly=True,
            samesite='Lax'
        )
        return response


def current_session() -> SessionAccessor:
    """Get/create the :class:`.SessionAccessor` for this request."""
    if 'page_session' not in g:
        provider = RequestStoreProvider(
            store.current_store(),
            current_app.config['PAGE_SESSION_COOKIE_NAME'],
            request.cookies
        )
        g.page_session_provider = provider
        g.page_session = SessionAccessor(
            provider,
            partial(is_interactive_request, request.headers)
        )
    accessor: SessionAccessor = g.page_session
    return accessor


session: SessionAccessor = LocalProxy(current_session)  # type: ignore
"""The page session of the current request."""
