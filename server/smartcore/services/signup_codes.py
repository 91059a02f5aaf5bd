"""Storage and hashing of one-time signup codes (``signup_codes`` table)."""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from ..models.signup import SignupPurpose
from .code_lifecycle import CodeState, RejectionReason, can_transition, code_state, reject
from .supabase import SupabaseRestClient

logger = logging.getLogger(__name__)

TABLE = "signup_codes"
SELECT_COLUMNS = "id,email,code_hash,purpose,company_code,full_name,expires_at,used_at,created_at"


def generate_signup_code() -> str:
    """Six decimal digits, uniform over 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


def hash_code(code: str, salt: str) -> str:
    return hashlib.sha256(f"{code}{salt}".encode("utf-8")).hexdigest()


def _key_filters(email: str, purpose: SignupPurpose, company_code: Optional[str]) -> dict[str, Any]:
    filters: dict[str, Any] = {"email": email, "purpose": purpose.value}
    if company_code:
        filters["company_code"] = company_code
    return filters


class SignupCodeRepository:
    def __init__(self, store: SupabaseRestClient):
        self.store = store

    async def create(
        self,
        *,
        email: str,
        purpose: SignupPurpose,
        code_hash: str,
        expires_at: datetime,
        company_code: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> None:
        row: dict[str, Any] = {
            "email": email,
            "code_hash": code_hash,
            "purpose": purpose.value,
            "company_code": company_code,
            "expires_at": expires_at.isoformat(),
            "used_at": None,
        }
        if full_name:
            row["full_name"] = full_name
        await self.store.insert(TABLE, row, returning=False)

    async def discard_unused(
        self,
        email: str,
        purpose: SignupPurpose,
        company_code: Optional[str] = None,
    ) -> None:
        """Delete earlier unused codes for the key so only one code is live at a time."""
        filters = _key_filters(email, purpose, company_code)
        filters["used_at"] = None
        await self.store.delete(TABLE, filters)

    async def latest(
        self,
        email: str,
        purpose: SignupPurpose,
        company_code: Optional[str] = None,
    ) -> Optional[dict]:
        rows = await self.store.select(
            TABLE,
            _key_filters(email, purpose, company_code),
            columns=SELECT_COLUMNS,
            order="created_at.desc",
            limit=1,
        )
        return rows[0] if rows else None

    async def consume(self, row: dict, now: datetime) -> dict:
        """Mark the code used in one conditional update.

        Only a row whose ``used_at`` is still null is updated, so of two
        concurrent redemptions exactly one gets the row back.
        """
        state = code_state(row, now)
        if not can_transition(state, CodeState.CONSUMED):
            raise reject(
                RejectionReason.EXPIRED if state == CodeState.EXPIRED else RejectionReason.ALREADY_USED
            )
        code_id = row["id"]
        rows = await self.store.update(
            TABLE,
            {"id": code_id, "used_at": None},
            {"used_at": now.isoformat()},
        )
        if not rows:
            logger.info("Signup code %s was consumed concurrently", code_id)
            raise reject(RejectionReason.ALREADY_USED)
        logger.info("Consumed signup code %s", code_id)
        return rows[0]

    async def release(self, code_id: Any, consumed_at: datetime) -> None:
        """Make a consumed code redeemable again after provisioning was rolled back.

        Only the consumption made at ``consumed_at`` is undone.
        """
        await self.store.update(
            TABLE,
            {"id": code_id, "used_at": consumed_at.isoformat()},
            {"used_at": None},
            returning=False,
        )
        logger.info("Released signup code %s", code_id)


def expiry_from(now: datetime, ttl_minutes: int) -> datetime:
    return now + timedelta(minutes=ttl_minutes)
