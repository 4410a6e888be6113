"""Tests for :mod:`pagesession.services.store`."""

from unittest import TestCase, mock
import json
from datetime import datetime

from flask import Flask
import jwt
from redis.exceptions import ConnectionError

from .. import store
from ...exceptions import InvalidCookie, InvalidSessionData, \
    StoreUnavailable, UnknownSession


class TestSessionStoreWithMockRedis(TestCase):
    """The store puts session data in Redis, with an expiry."""

    @mock.patch(f'{store.__name__}.redis')
    def test_create(self, mock_redis):
        """A new session ID is reserved with empty data."""
        mock_redis.exceptions.ConnectionError = ConnectionError
        mock_redis_connection = mock.MagicMock()
        mock_redis.StrictRedis.return_value = mock_redis_connection
        r = store.SessionStore('localhost', 6379, 0, 'foosecret', 500)
        session_id = r.create()
        self.assertTrue(bool(session_id))
        mock_redis_connection.set.assert_called_once_with(
            session_id, '{}', ex=500, nx=True
        )

    @mock.patch(f'{store.__name__}.redis')
    def test_connection_failed(self, mock_redis):
        """:class:`.StoreUnavailable` is raised when Redis is down."""
        mock_redis.exceptions.ConnectionError = ConnectionError
        mock_redis_connection = mock.MagicMock()
        mock_redis_connection.set.side_effect = ConnectionError
        mock_redis_connection.get.side_effect = ConnectionError
        mock_redis.StrictRedis.return_value = mock_redis_connection
        r = store.SessionStore('localhost', 6379, 0, 'foosecret')
        with self.assertRaises(StoreUnavailable):
            r.create()
        with self.assertRaises(StoreUnavailable):
            r.load('fooid')
        with self.assertRaises(StoreUnavailable):
            r.save('fooid', {'a': 1})

    @mock.patch(f'{store.__name__}.redis')
    def test_save_unserializable(self, mock_redis):
        """Data that cannot be stored as JSON is not a store failure."""
        mock_redis.exceptions.ConnectionError = ConnectionError
        mock_redis_connection = mock.MagicMock()
        mock_redis.StrictRedis.return_value = mock_redis_connection
        r = store.SessionStore('localhost', 6379, 0, 'foosecret')
        with self.assertRaises(TypeError):
            r.save('fooid', {'when': datetime(2020, 1, 1)})
        self.assertEqual(mock_redis_connection.set.call_count, 0)

    @mock.patch(f'{store.__name__}.redis')
    def test_delete(self, mock_redis):
        """Delete a session from the datastore."""
        mock_redis.exceptions.ConnectionError = ConnectionError
        mock_redis_connection = mock.MagicMock()
        mock_redis.StrictRedis.return_value = mock_redis_connection
        r = store.SessionStore('localhost', 6379, 0, 'foosecret')
        r.delete('fookey')
        self.assertEqual(mock_redis_connection.delete.call_count, 1)


class TestSessionStoreWithFakeRedis(TestCase):
    """Round trips through an in-process Redis."""

    def setUp(self):
        self.store = store.SessionStore('localhost', 6379, 0, 'foosecret',
                                        duration=500, fake=True)

    def test_create_and_load(self):
        """A new session has empty data and an expiry."""
        session_id = self.store.create()
        self.assertEqual(self.store.load(session_id), {})
        self.assertGreater(self.store.r.ttl(session_id), 0)

    def test_save_and_load(self):
        """Saved data is loaded back as it was."""
        session_id = self.store.create()
        data = {'user': {'id': 100}, '__flash__': {'next': {'m': 'hi'}}}
        self.store.save(session_id, data)
        self.assertEqual(self.store.load(session_id), data)

    def test_touch(self):
        """Touching resets the expiry."""
        session_id = self.store.create()
        self.store.r.expire(session_id, 5)
        self.store.touch(session_id)
        self.assertGreater(self.store.r.ttl(session_id), 5)

    def test_unknown(self):
        """Loading a deleted or never-created session fails."""
        session_id = self.store.create()
        self.store.delete(session_id)
        with self.assertRaises(UnknownSession):
            self.store.load(session_id)
        with self.assertRaises(UnknownSession):
            self.store.load('nope')

    def test_not_an_object(self):
        """Stored data that is not a JSON object is rejected."""
        self.store.r.set('list', json.dumps([1, 2]))
        self.store.r.set('garbage', 'not json')
        with self.assertRaises(InvalidSessionData):
            self.store.load('list')
        with self.assertRaises(InvalidSessionData):
            self.store.load('garbage')


class TestCookies(TestCase):
    """The session ID travels in a signed cookie."""

    def setUp(self):
        self.store = store.SessionStore('localhost', 6379, 0, 'foosecret',
                                        fake=True)

    def test_round_trip(self):
        """The session ID is recovered from the cookie."""
        cookie = self.store.generate_cookie('fooid')
        self.assertEqual(self.store.unpack_cookie(cookie), 'fooid')

    def test_wrong_secret(self):
        """A cookie signed with another secret is rejected."""
        cookie = jwt.encode({'session_id': 'fooid'}, 'notthesecret',
                            algorithm='HS256')
        with self.assertRaises(InvalidCookie):
            self.store.unpack_cookie(cookie)

    def test_malformed(self):
        """Something other than a JWT is rejected."""
        with self.assertRaises(InvalidCookie):
            self.store.unpack_cookie('definitelynotatoken')

    def test_missing_session_id(self):
        """A valid JWT without a session ID is rejected."""
        cookie = jwt.encode({'user_id': '1234'}, 'foosecret',
                            algorithm='HS256')
        with self.assertRaises(InvalidCookie):
            self.store.unpack_cookie(cookie)


class TestConfiguration(TestCase):
    """The store is configured from the Flask app."""

    def test_defaults(self):
        """Defaults are set on the application config."""
        app = Flask('test')
        store.init_app(app)
        self.assertEqual(app.config['REDIS_PORT'], '6379')
        self.assertEqual(app.config['SESSION_DURATION'], '7200')

    @mock.patch(f'{store.__name__}.redis')
    def test_get_redis_session(self, mock_redis):
        """The store connects with the configured parameters."""
        app = Flask('test')
        app.config['REDIS_HOST'] = 'redis'
        app.config['REDIS_PORT'] = '1234'
        app.config['REDIS_DATABASE'] = 4
        app.config['JWT_SECRET'] = 'barsecret'
        app.config['SESSION_DURATION'] = '60'
        r = store.get_redis_session(app)
        mock_redis.StrictRedis.assert_called_once_with(host='redis',
                                                       port=1234, db=4)
        self.assertEqual(r.duration, 60)

    def test_current_store(self):
        """One store is shared by every request of an application."""
        app = Flask('test')
        store.init_app(app)
        app.config['REDIS_FAKE'] = True
        with app.test_request_context():
            first = store.current_store()
        with app.test_request_context():
            self.assertIs(store.current_store(), first)
