"""Signup code lifecycle: states, allowed transitions and redemption checks."""

from __future__ import annotations

import hmac
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from ..errors import CodeRejectedError


class CodeState(str, Enum):
    ISSUED = "issued"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class CodeTransitionError(ValueError):
    """Raised when a signup code is moved along a transition that does not exist."""


class RejectionReason(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"
    INCORRECT = "incorrect"


REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.NOT_FOUND: "Code not found. Please request a new code.",
    RejectionReason.ALREADY_USED: "That code has already been used. Please request a new one.",
    RejectionReason.EXPIRED: "That code has expired. Please request a new code.",
    RejectionReason.INCORRECT: "Incorrect code. Please try again.",
}

_ALLOWED_TRANSITIONS: dict[CodeState, tuple[CodeState, ...]] = {
    CodeState.ISSUED: (
        CodeState.CONSUMED,
        CodeState.EXPIRED,
    ),
    # A consumed code goes back to issued only when provisioning was rolled back
    CodeState.CONSUMED: (
        CodeState.ISSUED,
    ),
    CodeState.EXPIRED: (),
}


def _coerce_state(value: str | CodeState) -> CodeState:
    if isinstance(value, CodeState):
        return value
    try:
        return CodeState(value)
    except ValueError as exc:
        raise CodeTransitionError(f"Unknown signup code state '{value}'") from exc


def can_transition(state_from: str | CodeState, state_to: str | CodeState) -> bool:
    return _coerce_state(state_to) in _ALLOWED_TRANSITIONS[_coerce_state(state_from)]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a data-store timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def code_state(row: Mapping[str, Any], now: datetime) -> CodeState:
    if row.get("used_at"):
        return CodeState.CONSUMED
    expires_at = parse_timestamp(row.get("expires_at"))
    if expires_at is None or expires_at <= now:
        return CodeState.EXPIRED
    return CodeState.ISSUED


def reject(reason: RejectionReason) -> CodeRejectedError:
    return CodeRejectedError(REJECTION_MESSAGES[reason], reason=reason.value)


def evaluate_code(
    row: Optional[Mapping[str, Any]],
    submitted_hash: str,
    now: datetime,
) -> Mapping[str, Any]:
    """Return ``row`` if it can be redeemed with ``submitted_hash``, else raise CodeRejectedError.

    Checks run in a fixed order: missing row, already used, expired, mismatch.
    """
    if not row:
        raise reject(RejectionReason.NOT_FOUND)

    state = code_state(row, now)
    if state == CodeState.CONSUMED:
        raise reject(RejectionReason.ALREADY_USED)
    if state == CodeState.EXPIRED:
        raise reject(RejectionReason.EXPIRED)

    if not hmac.compare_digest(str(row.get("code_hash") or ""), submitted_hash):
        raise reject(RejectionReason.INCORRECT)
    return row
