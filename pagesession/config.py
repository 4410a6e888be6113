"""Flask configuration for page sessions."""

import os
import secrets

#################### Session store ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service.

Useful for testing and development."""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '7200')
"""Seconds of inactivity after which a page session expires."""

#################### Session cookie ####################
JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Secret used to sign the session cookie."""

PAGE_SESSION_COOKIE_NAME = os.environ.get('PAGE_SESSION_COOKIE_NAME',
                                          'PAGE_SESSION_ID')
PAGE_SESSION_COOKIE_DOMAIN = os.environ.get('PAGE_SESSION_COOKIE_DOMAIN')
PAGE_SESSION_COOKIE_SECURE = bool(int(
    os.environ.get('PAGE_SESSION_COOKIE_SECURE', '1')
))

#################### Logging ####################
LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))

LOG_JSON = bool(int(os.environ.get('LOG_JSON', '0')))
"""Emit log records as JSON on stderr."""
