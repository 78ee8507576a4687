"""
Test configuration and fixtures

``FakeBackend`` keeps tables, identities and stored objects in memory; every
``FakeSupabase`` is one client on top of it with its own local session and
auth listeners, like a fresh supabase-py client per request.
"""
from types import SimpleNamespace
from datetime import datetime, timezone
import itertools
import pytest

from api import create_app

HOD_EMAIL = 'hod@university.edu'
PASSWORD = 'secret-password'


class FakeAuthApiError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.message = message
        self.status = status


class FakeBackend:
    def __init__(self):
        self.tables = {}
        self.accounts = {}
        self.tokens = {}
        self.revoked = []
        self.uploads = []
        self.inserts = []
        # (table, mode) of every executed query
        self.queries = []
        self.failing_tables = set()
        self.fail_uploads = False
        self.fail_get_user = False
        # table name -> callable run before a select on it returns
        self.before_select = {}
        self._ids = itertools.count(1)

    def next_id(self):
        return f"00000000-0000-0000-0000-{next(self._ids):012d}"

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def add_user(self, email, full_name=None, password=PASSWORD, with_profile=True, department=None):
        user = SimpleNamespace(
            id=self.next_id(),
            email=email,
            user_metadata={'full_name': full_name} if full_name else {},
        )
        self.accounts[email] = {'password': password, 'user': user}
        if with_profile:
            self.rows('profiles').append({
                'id': user.id,
                'email': email,
                'full_name': full_name or email,
                'department': department,
                'designation': None,
                'created_at': '2024-01-01T00:00:00+00:00',
            })
        return user

    def issue_token(self, user):
        token = f"token-{user.id}-{len(self.tokens)}"
        self.tokens[token] = user
        return token

    def add_row(self, table, **row):
        row.setdefault('id', self.next_id())
        row.setdefault('created_at', datetime.now(timezone.utc).isoformat())
        self.rows(table).append(row)
        return row


class FakeQuery:
    def __init__(self, backend, table):
        self.backend = backend
        self.table = table
        self.mode = 'select'
        self.count = None
        self.payload = None
        self.filters = []
        self.ordering = None
        self.max_rows = None

    def select(self, columns='*', count=None):
        self.mode = 'select'
        self.count = count
        return self

    def insert(self, row):
        self.mode = 'insert'
        self.payload = row
        return self

    def update(self, values):
        self.mode = 'update'
        self.payload = values
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and str(row.get(column)) >= str(value))
        return self

    def or_(self, expression):
        alternatives = []
        for part in expression.split(','):
            column, operator, value = part.split('.', 2)
            assert operator == 'eq'
            alternatives.append((column, value))
        self.filters.append(lambda row: any(row.get(c) == v for c, v in alternatives))
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, size):
        self.max_rows = size
        return self

    def _matching(self):
        return [row for row in self.backend.rows(self.table) if all(f(row) for f in self.filters)]

    def execute(self):
        self.backend.queries.append((self.table, self.mode))
        if self.table in self.backend.failing_tables:
            raise Exception(f"relation \"{self.table}\" is unavailable")

        if self.mode == 'insert':
            row = dict(self.payload)
            row.setdefault('id', self.backend.next_id())
            row.setdefault('created_at', datetime.now(timezone.utc).isoformat())
            self.backend.rows(self.table).append(row)
            self.backend.inserts.append((self.table, dict(row)))
            return SimpleNamespace(data=[dict(row)], count=None)

        if self.mode == 'update':
            updated = []
            for row in self._matching():
                row.update(self.payload)
                updated.append(dict(row))
            return SimpleNamespace(data=updated, count=None)

        hook = self.backend.before_select.get(self.table)
        if hook is not None:
            hook()
        rows = self._matching()
        if self.ordering:
            column, desc = self.ordering
            present = [row for row in rows if row.get(column) is not None]
            missing = [row for row in rows if row.get(column) is None]
            rows = sorted(present, key=lambda row: row[column], reverse=desc) + missing
        total = len(rows)
        if self.max_rows is not None:
            rows = rows[:self.max_rows]
        return SimpleNamespace(data=[dict(row) for row in rows], count=total if self.count else None)


class FakeSubscription:
    def __init__(self, listeners, callback):
        self.listeners = listeners
        self.callback = callback

    def unsubscribe(self):
        if self.callback in self.listeners:
            self.listeners.remove(self.callback)


class FakeAdmin:
    def __init__(self, backend):
        self.backend = backend

    def sign_out(self, jwt):
        self.backend.revoked.append(jwt)
        self.backend.tokens.pop(jwt, None)


class FakeAuth:
    def __init__(self, backend):
        self.backend = backend
        self.session = None
        self.listeners = []
        self.admin = FakeAdmin(backend)

    def _emit(self, event, session):
        for callback in list(self.listeners):
            callback(event, session)

    def get_user(self, jwt=None):
        if self.backend.fail_get_user:
            raise Exception('auth service unavailable')
        user = self.backend.tokens.get(jwt)
        if user is None:
            raise FakeAuthApiError('invalid JWT', 401)
        return SimpleNamespace(user=user)

    def get_session(self):
        return self.session

    def sign_in_with_password(self, credentials):
        account = self.backend.accounts.get(credentials.get('email'))
        if account is None or account['password'] != credentials.get('password'):
            raise FakeAuthApiError('Invalid login credentials', 400)
        user = account['user']
        self.session = SimpleNamespace(
            user=user,
            access_token=self.backend.issue_token(user),
            refresh_token=f"refresh-{user.id}",
        )
        self._emit('SIGNED_IN', self.session)
        return SimpleNamespace(user=user, session=self.session)

    def sign_up(self, credentials):
        email = credentials.get('email')
        if email in self.backend.accounts:
            raise FakeAuthApiError('User already registered', 422)
        metadata = credentials.get('options', {}).get('data', {})
        user = self.backend.add_user(email, metadata.get('full_name'), credentials.get('password'),
                                     with_profile=False)
        return SimpleNamespace(user=user, session=None)

    def sign_out(self):
        self.session = None
        self._emit('SIGNED_OUT', None)

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return FakeSubscription(self.listeners, callback)


class FakeBucket:
    def __init__(self, backend, name):
        self.backend = backend
        self.name = name

    def upload(self, path, file, file_options=None):
        if self.backend.fail_uploads:
            raise Exception('The resource already exists')
        self.backend.uploads.append({'bucket': self.name, 'path': path, 'size': len(file),
                                     'options': file_options})
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self, backend):
        self.backend = backend

    def from_(self, bucket):
        return FakeBucket(self.backend, bucket)


class FakeSupabase:
    def __init__(self, backend):
        self.backend = backend
        self.auth = FakeAuth(backend)
        self.storage = FakeStorage(backend)
        self.options = SimpleNamespace(headers={})

    def table(self, name):
        return FakeQuery(self.backend, name)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def supabase(backend):
    return FakeSupabase(backend)


@pytest.fixture
def app(backend):
    return create_app(
        config={'TESTING': True, 'PORTAL_HOD_EMAIL': HOD_EMAIL},
        client_factory=lambda: FakeSupabase(backend),
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def faculty_user(backend):
    return backend.add_user('asha@university.edu', 'Asha Rao', department='CSE')


@pytest.fixture
def other_faculty(backend):
    return backend.add_user('vikram@university.edu', 'Vikram Shah', department='CSE')


@pytest.fixture
def hod_user(backend):
    return backend.add_user(HOD_EMAIL, 'Head of Department', department='CSE')


@pytest.fixture
def bearer(backend):
    """Authorization header with a fresh token for the user"""
    def headers_for(user):
        return {'Authorization': f"Bearer {backend.issue_token(user)}"}
    return headers_for


@pytest.fixture
def faculty_headers(bearer, faculty_user):
    return bearer(faculty_user)


@pytest.fixture
def hod_headers(bearer, hod_user):
    return bearer(hod_user)
