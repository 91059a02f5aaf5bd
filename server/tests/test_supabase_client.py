import asyncio
import json

import httpx
import pytest

from smartcore.errors import SupabaseError
from smartcore.services.supabase import SupabaseRestClient, build_filter_params


def _client(handler):
    return SupabaseRestClient(
        "https://proj.supabase.co/",
        "service-key",
        transport=httpx.MockTransport(handler),
    )


def test_build_filter_params():
    assert build_filter_params({"id": "c1", "used_at": None, "is_admin": False}) == {
        "id": "eq.c1",
        "used_at": "is.null",
        "is_admin": "eq.false",
    }


def test_select_sends_filters_order_and_auth_headers():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": "c1", "email": "ana@acme.io"}])

    rows = asyncio.run(
        _client(handler).select(
            "signup_codes",
            {"email": "ana@acme.io", "used_at": None},
            columns="id,email",
            order="created_at.desc",
            limit=1,
        )
    )

    assert rows == [{"id": "c1", "email": "ana@acme.io"}]
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/signup_codes"
    assert request.url.params["select"] == "id,email"
    assert request.url.params["email"] == "eq.ana@acme.io"
    assert request.url.params["used_at"] == "is.null"
    assert request.url.params["order"] == "created_at.desc"
    assert request.url.params["limit"] == "1"
    assert "offset" not in request.url.params
    assert request.headers["apikey"] == "service-key"
    assert request.headers["authorization"] == "Bearer service-key"


def test_conditional_update_returns_affected_rows():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    rows = asyncio.run(
        _client(handler).update(
            "signup_codes",
            {"id": "c1", "used_at": None},
            {"used_at": "2026-10-18T09:00:00+00:00"},
        )
    )

    assert rows == []
    request = seen[0]
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.c1"
    assert request.url.params["used_at"] == "is.null"
    assert request.headers["prefer"] == "return=representation"
    assert json.loads(request.content) == {"used_at": "2026-10-18T09:00:00+00:00"}


def test_insert_without_representation_sends_a_list_body():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201)

    rows = asyncio.run(
        _client(handler).insert("signup_codes", {"email": "ana@acme.io"}, returning=False)
    )

    assert rows == []
    assert seen[0].headers["prefer"] == "return=minimal"
    assert json.loads(seen[0].content) == [{"email": "ana@acme.io"}]


def test_error_status_raises_with_upstream_body():
    def handler(request):
        return httpx.Response(409, text='{"message":"duplicate key value"}')

    with pytest.raises(SupabaseError) as exc_info:
        asyncio.run(_client(handler).insert("companies", {"company_code": "ACM123456"}))

    error = exc_info.value
    assert error.upstream_status == 409
    assert error.status_code == 500
    assert error.message == 'Supabase insert companies failed: {"message":"duplicate key value"}'


def test_update_and_delete_refuse_to_run_unfiltered():
    client = _client(lambda request: httpx.Response(204))

    with pytest.raises(ValueError):
        asyncio.run(client.update("employees", {}, {"user_id": None}))
    with pytest.raises(ValueError):
        asyncio.run(client.delete("employees", {}))


def test_select_sends_offset_for_later_pages():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    asyncio.run(
        _client(handler).select("employees", {"company_id": "co-1"}, order="id", limit=200, offset=400)
    )

    assert seen[0].url.params["order"] == "id"
    assert seen[0].url.params["limit"] == "200"
    assert seen[0].url.params["offset"] == "400"
