from datetime import datetime, timedelta, timezone
from itertools import count
from uuid import uuid4

import pytest

from smartcore.errors import IdentityServiceError, IdentityUserExistsError
from smartcore.services.signup_codes import hash_code

SALT = "test-salt"
NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def _matches(row, filters):
    for column, expected in (filters or {}).items():
        actual = row.get(column)
        if expected is None:
            if actual is not None:
                return False
        elif isinstance(expected, bool):
            if actual is not expected:
                return False
        elif actual is None or str(actual) != str(expected):
            return False
    return True


class FakeStore:
    """In-memory stand-in for SupabaseRestClient with the same filter rules."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self._created = count()

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def fail(self, method, table, exc):
        self.failures[(method, table)] = exc

    def _record(self, method, table):
        self.calls.append((method, table))
        exc = self.failures.pop((method, table), None)
        if exc is not None:
            raise exc

    async def select(self, table, filters=None, *, columns="*", order=None, limit=None, offset=None):
        self._record("select", table)
        rows = [dict(row) for row in self.rows(table) if _matches(row, filters)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda row: str(row.get(column) or ""), reverse=direction == "desc")
        if offset:
            rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table, rows, *, returning=True):
        self._record("insert", table)
        payload = [dict(rows)] if isinstance(rows, dict) else [dict(row) for row in rows]
        for row in payload:
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", (NOW + timedelta(seconds=next(self._created))).isoformat())
            self.rows(table).append(row)
        return [dict(row) for row in payload] if returning else []

    async def update(self, table, filters, values, *, returning=True):
        self._record("update", table)
        updated = []
        for row in self.rows(table):
            if _matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated if returning else []

    async def delete(self, table, filters):
        self._record("delete", table)
        self.tables[table] = [row for row in self.rows(table) if not _matches(row, filters)]


class FakeIdentity:
    def __init__(self):
        self.users: dict[str, dict] = {}
        self.deleted: list[str] = []
        self.fail_create = False
        self.fail_delete = False

    def add_existing(self, email):
        user = {"id": str(uuid4()), "email": email}
        self.users[user["id"]] = user
        return user

    async def create_user(self, email, password, user_metadata=None):
        if self.fail_create:
            raise IdentityServiceError("Create user", status_code=500, body="boom")
        if any(user["email"] == email for user in self.users.values()):
            raise IdentityUserExistsError()
        user = {"id": str(uuid4()), "email": email, "user_metadata": user_metadata or {}}
        self.users[user["id"]] = user
        return user

    async def find_user_by_email(self, email):
        for user in self.users.values():
            if user["email"] == email.strip().lower():
                return user
        return None

    async def delete_user(self, user_id):
        if self.fail_delete:
            raise IdentityServiceError("Delete user", status_code=500, body="unavailable")
        self.users.pop(user_id, None)
        self.deleted.append(user_id)


class FakeMailer:
    def __init__(self):
        self.sent: list[dict] = []
        self.error = None

    async def send_signup_code_email(self, to_email, code, purpose, ttl_minutes=10):
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to_email, "code": code, "purpose": purpose, "ttl_minutes": ttl_minutes})


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def seed_code(store):
    """Insert a signup code row as the issuer would have stored it."""

    def _seed(
        email,
        code,
        purpose="owner_signup",
        *,
        company_code=None,
        full_name=None,
        expires_at=None,
        used_at=None,
    ):
        row = {
            "id": str(uuid4()),
            "email": email,
            "code_hash": hash_code(code, SALT),
            "purpose": purpose,
            "company_code": company_code,
            "full_name": full_name,
            "expires_at": (expires_at or NOW + timedelta(minutes=10)).isoformat(),
            "used_at": used_at,
            "created_at": NOW.isoformat(),
        }
        store.rows("signup_codes").append(row)
        return dict(row)

    return _seed


@pytest.fixture
def seed_company(store):
    """Insert a company and its roster entries."""

    def _seed(company_name="Acme Ltd", company_code="ACM123456", employees=()):
        company = {"id": str(uuid4()), "company_name": company_name, "company_code": company_code}
        store.rows("companies").append(company)
        for employee in employees:
            store.rows("employees").append(
                {"id": str(uuid4()), "company_id": company["id"], "user_id": None, **employee}
            )
        return company

    return _seed
