"""Supabase Auth admin client used to provision and clean up signup identities."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..errors import IdentityServiceError, IdentityUserExistsError

logger = logging.getLogger(__name__)

USERS_PAGE_SIZE = 200


def _extract_response_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
        if isinstance(payload, dict):
            for key in ("msg", "message", "error_description", "error"):
                message = payload.get(key)
                if isinstance(message, str) and message.strip():
                    return message.strip()
    except ValueError:
        pass
    return (response.text or "Unknown identity service error").strip()


def _looks_like_existing_user(message: str) -> bool:
    lowered = message.lower()
    return "already" in lowered or "exists" in lowered


class SupabaseAuthAdmin:
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
    def users_url(self) -> str:
        return f"{self.base_url}/auth/v1/admin/users"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)

    async def create_user(
        self,
        email: str,
        password: str,
        user_metadata: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        payload = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": user_metadata or {},
        }
        async with self._client() as client:
            response = await client.post(self.users_url, json=payload, headers=self._headers())

        if response.status_code >= 400:
            message = _extract_response_error(response)
            if _looks_like_existing_user(message):
                raise IdentityUserExistsError()
            raise IdentityServiceError(
                "Create user", status_code=response.status_code, body=message
            )

        created = response.json() if response.content else {}
        # Some gateway versions wrap the record in {"user": {...}}
        if isinstance(created, dict) and isinstance(created.get("user"), dict):
            created = created["user"]
        if not isinstance(created, dict) or not created.get("id"):
            raise IdentityServiceError("Create user", message="Create user failed (no id)")

        logger.info("[Identity] Created user %s for %s", created["id"], email)
        return created

    async def find_user_by_email(self, email: str) -> Optional[dict[str, Any]]:
        target = email.strip().lower()
        page = 1
        async with self._client() as client:
            while True:
                response = await client.get(
                    self.users_url,
                    params={"page": page, "per_page": USERS_PAGE_SIZE},
                    headers=self._headers(),
                )
                if response.status_code >= 400:
                    raise IdentityServiceError(
                        "List users",
                        status_code=response.status_code,
                        body=_extract_response_error(response),
                    )
                payload = response.json() if response.content else {}
                users = payload.get("users", []) if isinstance(payload, dict) else payload
                for user in users or []:
                    if str(user.get("email") or "").strip().lower() == target:
                        return user
                if not users or len(users) < USERS_PAGE_SIZE:
                    return None
                page += 1

    async def delete_user(self, user_id: str) -> None:
        async with self._client() as client:
            response = await client.delete(f"{self.users_url}/{user_id}", headers=self._headers())
        if response.status_code >= 400 and response.status_code != 404:
            raise IdentityServiceError(
                "Delete user",
                status_code=response.status_code,
                body=_extract_response_error(response),
            )
        logger.info("[Identity] Deleted user %s", user_id)
