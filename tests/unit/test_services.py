"""Tests for user, group and event services built on the client."""
from datetime import datetime, timezone

import pytest

from directory_client.config.settings import settings_from_mapping
from directory_client.core.client import DirectoryClient
from directory_client.core.events import EventService, format_timestamp
from directory_client.core.groups import GroupService
from directory_client.core.users import UserService
from directory_client.exceptions import (
    FatalHttpError,
    GroupNotFoundError,
    UserNotFoundError,
)

API = "https://example.directory.test/api/v1"


@pytest.fixture()
def client(make_context):
    settings = settings_from_mapping({"baseUrl": "https://example.directory.test"})
    return DirectoryClient(make_context(), settings=settings)


def _calls(session):
    return [(c["method"], c["url"]) for c in session.calls]


# ─────────────────────────────────────────────────────────────────────────────
# Users
# ─────────────────────────────────────────────────────────────────────────────
def test_list_users_paginates(client, session, make_response):
    session.queue(
        make_response(200, [{"id": "u1"}], headers={"Link": f'<{API}/users?after=u1&limit=1>; rel="next"'}),
        make_response(200, [{"id": "u2"}]),
    )
    users = UserService(client).list_users(limit=1)
    assert [u["id"] for u in users] == ["u1", "u2"]
    assert _calls(session)[0] == ("GET", f"{API}/users?limit=1")


def test_get_user_not_found(client, session, make_response):
    session.queue(make_response(404, {"errorCode": "E0000007"}))
    with pytest.raises(UserNotFoundError):
        UserService(client).get_user("ghost")


def test_get_user_other_errors_propagate(client, session, make_response):
    session.queue(make_response(403))
    with pytest.raises(FatalHttpError):
        UserService(client).get_user("u1")


def test_find_user_by_login_exact_match(client, session, make_response):
    session.queue(make_response(200, [
        {"id": "u1", "profile": {"login": "alice@example.com.au"}},
        {"id": "u2", "profile": {"login": "alice@example.com"}},
    ]))
    user = UserService(client).find_user_by_login("alice@example.com")
    assert user["id"] == "u2"
    assert "filter=profile.login+eq+%22alice%40example.com%22" in session.calls[0]["url"]


def test_find_user_by_login_none(client, session, make_response):
    session.queue(make_response(200, []))
    assert UserService(client).find_user_by_login("nobody@example.com") is None


def test_create_user_posts_profile(client, session, make_response):
    session.queue(make_response(200, {"id": "u9", "status": "STAGED"}))
    created = UserService(client).create_user(
        {"login": "bob@example.com", "email": "bob@example.com"}, activate=False
    )
    assert created["id"] == "u9"
    assert _calls(session) == [("POST", f"{API}/users?activate=false")]
    assert b'"login": "bob@example.com"' in session.calls[0]["data"]


def test_create_user_requires_login():
    with pytest.raises(ValueError):
        UserService(client=None).create_user({"email": "x@example.com"})


def test_lifecycle_calls(client, session, make_response):
    session.queue(make_response(200, {}), make_response(200, {}))
    service = UserService(client)
    service.activate_user("u1")
    service.deactivate_user("u1")
    assert _calls(session) == [
        ("POST", f"{API}/users/u1/lifecycle/activate?sendEmail=false"),
        ("POST", f"{API}/users/u1/lifecycle/deactivate"),
    ]


def test_deactivate_missing_user(client, session, make_response):
    session.queue(make_response(404))
    with pytest.raises(UserNotFoundError):
        UserService(client).deactivate_user("ghost")


# ─────────────────────────────────────────────────────────────────────────────
# Groups
# ─────────────────────────────────────────────────────────────────────────────
def test_group_membership(client, session, make_response):
    session.queue(make_response(204), make_response(204))
    service = GroupService(client)
    service.add_user_to_group("g1", "u1")
    assert service.remove_user_from_group("g1", "u1") is True
    assert _calls(session) == [
        ("PUT", f"{API}/groups/g1/users/u1"),
        ("DELETE", f"{API}/groups/g1/users/u1"),
    ]


def test_remove_non_member_returns_false(client, session, make_response):
    session.queue(make_response(404))
    assert GroupService(client).remove_user_from_group("g1", "u1") is False


def test_list_group_members_missing_group(client, session, make_response):
    session.queue(make_response(404))
    with pytest.raises(GroupNotFoundError):
        GroupService(client).list_group_members("nope")


# ─────────────────────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────────────────────
def test_format_timestamp():
    ts = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)
    assert format_timestamp(ts) == "2024-05-01T12:30:15.123Z"
    assert format_timestamp(datetime(2024, 5, 1)) == "2024-05-01T00:00:00.000Z"
    assert format_timestamp("2024-05-01T00:00:00Z") == "2024-05-01T00:00:00Z"
    assert format_timestamp(None) is None


def test_fetch_events_capped(client, session, make_response):
    session.queue(*[
        make_response(200, [{"uuid": str(n)}], headers={"Link": f'<{API}/logs?after={n}>; rel="next"'})
        for n in range(5)
    ])
    events = EventService(client).fetch_events(since=datetime(2024, 5, 1, tzinfo=timezone.utc), max_pages=2)
    assert [e["uuid"] for e in events] == ["0", "1"]
    assert session.calls[0]["url"] == f"{API}/logs?since=2024-05-01T00%3A00%3A00.000Z"
