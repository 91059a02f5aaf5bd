"""Issues one-time signup codes and emails them to the requester."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..models.signup import SendCodeRequest
from .code_lifecycle import utc_now
from .email import EmailService
from .signup_codes import SignupCodeRepository, expiry_from, generate_signup_code, hash_code

logger = logging.getLogger(__name__)


class CodeIssuer:
    def __init__(
        self,
        codes: SignupCodeRepository,
        email_service: EmailService,
        *,
        salt: str,
        ttl_minutes: int = 10,
        clock: Optional[Callable[[], datetime]] = None,
        code_factory: Callable[[], str] = generate_signup_code,
    ):
        self.codes = codes
        self.email_service = email_service
        self.salt = salt
        self.ttl_minutes = ttl_minutes
        self.clock = clock or utc_now
        self.code_factory = code_factory

    async def issue(self, request: SendCodeRequest) -> None:
        """Store a hashed code for the request's key, then email the plaintext code.

        The row is written before delivery; if delivery fails the row stays and
        the next request for the same key replaces it.
        """
        code = self.code_factory()
        now = self.clock()

        await self.codes.discard_unused(request.email, request.purpose, request.company_code)
        await self.codes.create(
            email=request.email,
            purpose=request.purpose,
            code_hash=hash_code(code, self.salt),
            expires_at=expiry_from(now, self.ttl_minutes),
            company_code=request.company_code,
            full_name=request.full_name,
        )
        logger.info("[Signup] Issued %s code for %s", request.purpose.value, request.email)

        await self.email_service.send_signup_code_email(
            request.email,
            code,
            request.purpose,
            ttl_minutes=self.ttl_minutes,
        )
