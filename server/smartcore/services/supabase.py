"""Row-level access to the Supabase data store over its PostgREST interface."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

import httpx

from ..errors import SupabaseError

logger = logging.getLogger(__name__)

Filters = Mapping[str, Any]


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_filter_params(filters: Optional[Filters]) -> dict[str, str]:
    """Translate ``{column: value}`` into PostgREST predicates.

    A plain value is an equality match; ``None`` matches SQL NULL.
    """
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        else:
            params[column] = f"eq.{_render_value(value)}"
    return params


def _response_body(response: httpx.Response) -> str:
    return (response.text or "").strip()


class SupabaseRestClient:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        timeout_seconds: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}/rest/v1"

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)

    async def _request(
        self,
        method: str,
        table: str,
        *,
        operation: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        async with self._client() as client:
            response = await client.request(
                method,
                f"{self.rest_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        if response.status_code >= 400:
            body = _response_body(response)
            logger.warning(
                "[Supabase] %s %s failed with %s: %s", method, table, response.status_code, body
            )
            raise SupabaseError(operation, status_code=response.status_code, body=body)
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> list[dict]:
        if not response.content:
            return []
        payload = response.json()
        if isinstance(payload, list):
            return [row for row in payload if isinstance(row, dict)]
        if isinstance(payload, dict):
            return [payload]
        return []

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict]:
        params = {"select": columns, **build_filter_params(filters)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        if offset:
            params["offset"] = str(offset)
        response = await self._request(
            "GET", table, operation=f"Supabase read {table}", params=params
        )
        return self._rows(response)

    async def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]] | Mapping[str, Any],
        *,
        returning: bool = True,
    ) -> list[dict]:
        payload = [dict(rows)] if isinstance(rows, Mapping) else [dict(row) for row in rows]
        response = await self._request(
            "POST",
            table,
            operation=f"Supabase insert {table}",
            json=payload,
            prefer="return=representation" if returning else "return=minimal",
        )
        return self._rows(response) if returning else []

    async def update(
        self,
        table: str,
        filters: Filters,
        values: Mapping[str, Any],
        *,
        returning: bool = True,
    ) -> list[dict]:
        if not filters:
            raise ValueError("update requires at least one filter")
        response = await self._request(
            "PATCH",
            table,
            operation=f"Supabase update {table}",
            params=build_filter_params(filters),
            json=dict(values),
            prefer="return=representation" if returning else "return=minimal",
        )
        return self._rows(response) if returning else []

    async def delete(self, table: str, filters: Filters) -> None:
        if not filters:
            raise ValueError("delete requires at least one filter")
        await self._request(
            "DELETE",
            table,
            operation=f"Supabase delete {table}",
            params=build_filter_params(filters),
            prefer="return=minimal",
        )
