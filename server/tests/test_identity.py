import asyncio
import json

import httpx
import pytest

from smartcore.errors import IdentityServiceError, IdentityUserExistsError
from smartcore.services.identity import SupabaseAuthAdmin


def _admin(handler):
    return SupabaseAuthAdmin(
        "https://proj.supabase.co",
        "service-key",
        transport=httpx.MockTransport(handler),
    )


def test_create_user_confirms_email_and_sends_metadata():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "user-1", "email": "ana@acme.io"})

    user = asyncio.run(
        _admin(handler).create_user("ana@acme.io", "s3cretpass", {"role": "owner"})
    )

    assert user["id"] == "user-1"
    assert seen[0].url.path == "/auth/v1/admin/users"
    body = json.loads(seen[0].content)
    assert body["email_confirm"] is True
    assert body["user_metadata"] == {"role": "owner"}


def test_create_user_unwraps_user_envelope():
    def handler(request):
        return httpx.Response(200, json={"user": {"id": "user-2"}})

    user = asyncio.run(_admin(handler).create_user("ana@acme.io", "s3cretpass"))

    assert user == {"id": "user-2"}


def test_existing_account_maps_to_conflict():
    def handler(request):
        return httpx.Response(422, json={"msg": "A user with this email address has already been registered"})

    with pytest.raises(IdentityUserExistsError) as exc_info:
        asyncio.run(_admin(handler).create_user("ana@acme.io", "s3cretpass"))

    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "This email is already registered. Please log in instead."


def test_other_failures_carry_upstream_message():
    def handler(request):
        return httpx.Response(500, json={"error_description": "database unavailable"})

    with pytest.raises(IdentityServiceError) as exc_info:
        asyncio.run(_admin(handler).create_user("ana@acme.io", "s3cretpass"))

    assert exc_info.value.message == "Create user failed: database unavailable"
    assert exc_info.value.upstream_status == 500


def test_success_without_id_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"email": "ana@acme.io"})

    with pytest.raises(IdentityServiceError, match=r"Create user failed \(no id\)"):
        asyncio.run(_admin(handler).create_user("ana@acme.io", "s3cretpass"))


def test_find_user_by_email_pages_through_users():
    pages: list[str] = []

    def handler(request):
        page = request.url.params["page"]
        pages.append(page)
        if page == "1":
            users = [{"id": f"u{i}", "email": f"user{i}@x.com"} for i in range(200)]
        else:
            users = [{"id": "target", "email": "Ana@Acme.io"}]
        return httpx.Response(200, json={"users": users})

    user = asyncio.run(_admin(handler).find_user_by_email("ana@acme.io"))

    assert user["id"] == "target"
    assert pages == ["1", "2"]


def test_find_user_by_email_returns_none_after_last_page():
    def handler(request):
        return httpx.Response(200, json={"users": [{"id": "u1", "email": "bob@x.com"}]})

    assert asyncio.run(_admin(handler).find_user_by_email("ana@acme.io")) is None


def test_delete_user_tolerates_missing_user():
    def handler(request):
        assert request.method == "DELETE"
        assert request.url.path == "/auth/v1/admin/users/user-1"
        return httpx.Response(404, json={"msg": "User not found"})

    asyncio.run(_admin(handler).delete_user("user-1"))


def test_delete_user_raises_on_server_error():
    def handler(request):
        return httpx.Response(500, text="boom")

    with pytest.raises(IdentityServiceError, match="Delete user failed: boom"):
        asyncio.run(_admin(handler).delete_user("user-1"))
