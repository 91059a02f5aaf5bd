"""Human-shareable company and employee codes.

A code is a three-letter prefix plus a random numeric suffix. Uniqueness is
best effort: candidates are probed against the data store a bounded number
of times and the last candidate is used if every probe collides.
"""

from __future__ import annotations

import logging
import secrets
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

PREFIX_LENGTH = 3
PREFIX_PAD = "X"
FALLBACK_PREFIX = "COM"

COMPANY_CODE_DIGITS = 6
COMPANY_CODE_ATTEMPTS = 10
EMPLOYEE_CODE_DIGITS = 9
EMPLOYEE_CODE_ATTEMPTS = 12

CodeExists = Callable[[str], Awaitable[bool]]


def name_prefix(name: str) -> str:
    letters = [char for char in (name or "") if char.isascii() and char.isalpha()]
    if not letters:
        return FALLBACK_PREFIX
    prefix = "".join(letters[:PREFIX_LENGTH]).upper()
    return prefix.ljust(PREFIX_LENGTH, PREFIX_PAD)


def company_code_suffix() -> str:
    # 100000-999999, never a leading zero
    return str(100000 + secrets.randbelow(900000))


def employee_code_suffix() -> str:
    return str(secrets.randbelow(10 ** EMPLOYEE_CODE_DIGITS)).zfill(EMPLOYEE_CODE_DIGITS)


async def generate_unique_code(
    prefix: str,
    make_suffix: Callable[[], str],
    exists: CodeExists,
    *,
    max_attempts: int,
) -> str:
    candidate = f"{prefix}{make_suffix()}"
    for attempt in range(1, max_attempts + 1):
        if not await exists(candidate):
            return candidate
        logger.info("Code %s already taken (attempt %s/%s)", candidate, attempt, max_attempts)
        candidate = f"{prefix}{make_suffix()}"

    logger.warning(
        "Could not find a free code for prefix %s after %s attempts; using %s",
        prefix,
        max_attempts,
        candidate,
    )
    return candidate


async def generate_company_code(company_name: str, exists: CodeExists) -> str:
    return await generate_unique_code(
        name_prefix(company_name),
        company_code_suffix,
        exists,
        max_attempts=COMPANY_CODE_ATTEMPTS,
    )


async def generate_employee_code(company_code: str, exists: CodeExists) -> str:
    prefix = (company_code or "")[:PREFIX_LENGTH].upper().ljust(PREFIX_LENGTH, PREFIX_PAD)
    return await generate_unique_code(
        prefix,
        employee_code_suffix,
        exists,
        max_attempts=EMPLOYEE_CODE_ATTEMPTS,
    )
