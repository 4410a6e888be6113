"""Application factory for page-session apps."""

from flask import Flask

from . import PageSession
from .app_logging import setup_logger


def create_web_app() -> Flask:
    """Initialize a Flask application with page sessions attached."""
    app = Flask('pagesession')
    app.config.from_object('pagesession.config')

    if app.config['LOG_JSON']:
        setup_logger(app.config['LOGLEVEL'])

    PageSession(app)
    return app
