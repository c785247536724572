from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError
from supabase import AuthError

from silent_auction.auth import ACCESS_DENIED_MESSAGE, AuthGate
from silent_auction.config import AppConfig, SupabaseConfig
from silent_auction.errors import AccessDenied, AuthenticationFailed


class InvalidCredentials(AuthError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


class FakeQuery:
    def __init__(self, rows, error=None):
        self._rows = rows
        self._error = error
        self.filters = []

    def select(self, *columns):
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def limit(self, n):
        return self

    def execute(self):
        if self._error is not None:
            raise self._error
        column, value = self.filters[0]
        return SimpleNamespace(data=[row for row in self._rows if row.get(column) == value])


class FakeAuth:
    def __init__(self, users):
        self.users = users
        self.signed_out = False
        self.signed_up = []

    def sign_in_with_password(self, credentials):
        if self.users.get(credentials["email"]) != credentials["password"]:
            raise InvalidCredentials("Invalid login credentials")
        return SimpleNamespace(user=SimpleNamespace(email=credentials["email"], id="uid-1"))

    def sign_out(self):
        self.signed_out = True

    def sign_up(self, credentials):
        self.signed_up.append(credentials["email"])


class FakeClient:
    def __init__(self, users, approved, table_error=None):
        self.auth = FakeAuth(users)
        self.approved = approved
        self.table_error = table_error
        self.tables_queried = []

    def table(self, name):
        self.tables_queried.append(name)
        return FakeQuery([{"email": email} for email in self.approved], self.table_error)


def _gate(client):
    return AuthGate(
        client_factory=lambda: client,
        supabase_config=SupabaseConfig(url="https://example.supabase.co", key="k"),
        app_config=AppConfig(),
    )


USERS = {"ops@example.org": "secret", "stranger@example.org": "pw"}


def test_approved_user_signs_in():
    client = FakeClient(USERS, approved=["ops@example.org"])
    user = _gate(client).sign_in(" ops@example.org ", "secret")
    assert user.email == "ops@example.org"
    assert user.user_id == "uid-1"
    assert client.tables_queried == ["approved_users"]
    assert not client.auth.signed_out


def test_unapproved_user_is_signed_out():
    client = FakeClient(USERS, approved=["ops@example.org"])
    with pytest.raises(AccessDenied, match=ACCESS_DENIED_MESSAGE):
        _gate(client).sign_in("stranger@example.org", "pw")
    assert client.auth.signed_out


def test_missing_allow_list_table_allows_access():
    error = APIError({"message": 'relation "approved_users" does not exist', "code": "42P01", "hint": None, "details": None})
    client = FakeClient(USERS, approved=[], table_error=error)
    assert _gate(client).sign_in("stranger@example.org", "pw").email == "stranger@example.org"


def test_other_allow_list_errors_deny_access():
    error = APIError({"message": "permission denied", "code": "42501", "hint": None, "details": None})
    client = FakeClient(USERS, approved=["ops@example.org"], table_error=error)
    with pytest.raises(AccessDenied):
        _gate(client).sign_in("ops@example.org", "secret")
    assert client.auth.signed_out


def test_bad_credentials():
    client = FakeClient(USERS, approved=["ops@example.org"])
    with pytest.raises(AuthenticationFailed, match="Invalid login credentials"):
        _gate(client).sign_in("ops@example.org", "wrong")


def test_blank_credentials_never_reach_the_client():
    def factory():
        raise AssertionError("client should not be created")

    gate = AuthGate(client_factory=factory, supabase_config=SupabaseConfig(url="", key=""), app_config=AppConfig())
    with pytest.raises(AuthenticationFailed):
        gate.sign_in("", "secret")
    with pytest.raises(AuthenticationFailed):
        gate.sign_up("ops@example.org", "")


def test_sign_up():
    client = FakeClient(USERS, approved=[])
    message = _gate(client).sign_up("new@example.org", "pw123456")
    assert "confirmation link" in message
    assert client.auth.signed_up == ["new@example.org"]
