"""Redeems signup codes and provisions owner or employee accounts.

Redemption order:
1. read-only checks (code row, company and roster for employees, existing identity),
2. atomic consumption of the code,
3. provisioning as a saga; on failure completed steps are undone and, when
   every undo succeeded, the code is released so the same code can be retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from ..errors import IdentityUserExistsError, SignupError
from ..models.signup import SignupPurpose, VerifyCodeRequest
from .code_lifecycle import evaluate_code, utc_now
from .codes import generate_company_code
from .identity import SupabaseAuthAdmin
from .pricing import CURRENCY, calculate_subscription_price
from .roster import (
    COMPANY_NOT_FOUND_MESSAGE,
    EMPLOYEE_ALREADY_LINKED_MESSAGE,
    EMPLOYEE_NOT_FOUND_MESSAGE,
    EmployeeRoster,
    match_employee,
)
from .saga import ProvisioningSaga
from .signup_codes import SignupCodeRepository, hash_code
from .supabase import SupabaseRestClient

logger = logging.getLogger(__name__)

PROFILES = "profiles"
SUBSCRIPTIONS = "subscriptions"


@dataclass
class EmployeeSignupPlan:
    company: dict
    employee: dict
    full_name: str


class SignupOnboarding:
    def __init__(
        self,
        store: SupabaseRestClient,
        identity: SupabaseAuthAdmin,
        *,
        salt: str,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.identity = identity
        self.salt = salt
        self.clock = clock or utc_now
        self.codes = SignupCodeRepository(store)
        self.roster = EmployeeRoster(store)

    async def redeem(self, request: VerifyCodeRequest) -> dict[str, Any]:
        now = self.clock()
        row = await self.codes.latest(request.email, request.purpose, request.company_code)
        try:
            evaluate_code(row, hash_code(request.code, self.salt), now)
        except SignupError as exc:
            logger.info("[Signup] Rejected code for %s: %s", request.email, exc.reason)
            raise

        employee_plan = None
        if request.purpose == SignupPurpose.EMPLOYEE_SIGNUP:
            employee_plan = await self._plan_employee_signup(request, row)

        await self._ensure_email_available(request.email)

        await self.codes.consume(row, now)
        saga = ProvisioningSaga(request.purpose.value)
        try:
            if employee_plan is not None:
                result = await self._provision_employee(saga, request, employee_plan)
            else:
                result = await self._provision_owner(saga, request)
        except Exception:
            logger.warning(
                "[Signup] %s for %s failed after %s; rolling back",
                request.purpose.value,
                request.email,
                saga.completed_steps or "no steps",
            )
            failed = await saga.rollback()
            if failed:
                # A half-provisioned account would block a retry with the same code
                logger.error(
                    "[Signup] Signup code %s stays consumed; could not undo: %s",
                    row["id"],
                    ", ".join(failed),
                )
            else:
                await self._release_code(row["id"], now)
            raise

        logger.info("[Signup] Completed %s for %s", request.purpose.value, request.email)
        return result

    async def _release_code(self, code_id: Any, consumed_at: datetime) -> None:
        try:
            await self.codes.release(code_id, consumed_at)
        except Exception:
            logger.exception("[Signup] Could not release signup code %s", code_id)

    async def _ensure_email_available(self, email: str) -> None:
        if await self.identity.find_user_by_email(email):
            raise IdentityUserExistsError()

    async def _plan_employee_signup(self, request: VerifyCodeRequest, row: dict) -> EmployeeSignupPlan:
        company_code = request.company_code or str(row.get("company_code") or "").strip().upper()
        full_name = request.full_name or str(row.get("full_name") or "").strip()
        if not company_code:
            raise SignupError("Missing company_code")
        if not full_name:
            raise SignupError("Missing full_name")

        company = await self.roster.find_company_by_code(company_code)
        if not company:
            raise SignupError(COMPANY_NOT_FOUND_MESSAGE)

        employee = match_employee(await self.roster.list_employees(company["id"]), full_name)
        if not employee:
            raise SignupError(EMPLOYEE_NOT_FOUND_MESSAGE)
        if employee.get("user_id"):
            raise SignupError(EMPLOYEE_ALREADY_LINKED_MESSAGE, status_code=409)

        return EmployeeSignupPlan(company=company, employee=employee, full_name=full_name)

    async def _create_profile(self, profile: dict[str, Any]) -> dict:
        rows = await self.store.insert(PROFILES, profile)
        return rows[0] if rows else profile

    async def _delete_profile(self, user_id: str) -> None:
        await self.store.delete(PROFILES, {"user_id": user_id})

    async def _provision_owner(self, saga: ProvisioningSaga, request: VerifyCodeRequest) -> dict[str, Any]:
        user = await saga.step(
            "create identity user",
            lambda: self.identity.create_user(
                request.email,
                request.password,
                {"full_name": request.full_name, "company_name": request.company_name, "role": "owner"},
            ),
            compensate=lambda created: self.identity.delete_user(created["id"]),
        )
        user_id = str(user["id"])

        company_code = await generate_company_code(request.company_name, self.roster.company_code_exists)
        company = await saga.step(
            "create company",
            lambda: self.roster.create_company(
                company_name=request.company_name,
                company_code=company_code,
                owner_user_id=user_id,
                company_size=request.company_size,
                max_employees=request.max_employees,
            ),
            compensate=lambda created: self.roster.delete_company(created["id"]),
        )
        company_id = str(company["id"])

        await saga.step(
            "create owner profile",
            lambda: self._create_profile(
                {
                    "user_id": user_id,
                    "email": request.email,
                    "company_id": company_id,
                    "company_name": request.company_name,
                    "full_name": request.full_name,
                    "role": "owner",
                    "is_admin": True,
                }
            ),
            compensate=lambda _profile: self._delete_profile(user_id),
        )

        subscription_id = None
        if request.module_ids:
            monthly_price = calculate_subscription_price(request.module_ids, request.company_size)
            subscription = await saga.step(
                "create subscription",
                lambda: self.store.insert(
                    SUBSCRIPTIONS,
                    {
                        "company_id": company_id,
                        "owner_user_id": user_id,
                        "module_ids": request.module_ids,
                        "monthly_price": str(monthly_price),
                        "currency": CURRENCY,
                        "status": "pending",
                    },
                ),
                compensate=lambda _rows: self.store.delete(SUBSCRIPTIONS, {"company_id": company_id}),
            )
            if subscription and subscription[0].get("id"):
                subscription_id = str(subscription[0]["id"])

        return {
            "ok": True,
            "created": True,
            "purpose": request.purpose,
            "user_id": user_id,
            "company_id": company_id,
            "company_code": company.get("company_code") or company_code,
            "subscription_id": subscription_id,
        }

    async def _provision_employee(
        self,
        saga: ProvisioningSaga,
        request: VerifyCodeRequest,
        plan: EmployeeSignupPlan,
    ) -> dict[str, Any]:
        company = plan.company
        employee = plan.employee
        company_id = str(company["id"])

        user = await saga.step(
            "create identity user",
            lambda: self.identity.create_user(
                request.email,
                request.password,
                {
                    "full_name": employee.get("full_name") or plan.full_name,
                    "company_name": company.get("company_name"),
                    "role": "employee",
                },
            ),
            compensate=lambda created: self.identity.delete_user(created["id"]),
        )
        user_id = str(user["id"])

        await saga.step(
            "link employee",
            lambda: self.roster.link_employee(employee["id"], user_id),
            compensate=lambda _linked: self.roster.unlink_employee(employee["id"]),
        )

        await saga.step(
            "create employee profile",
            lambda: self._create_profile(
                {
                    "user_id": user_id,
                    "email": request.email,
                    "company_id": company_id,
                    "company_name": company.get("company_name"),
                    "full_name": employee.get("full_name") or plan.full_name,
                    "job_title": employee.get("job_title"),
                    "job_category": employee.get("job_category"),
                    "role": "employee",
                    "is_admin": bool(employee.get("is_admin")),
                }
            ),
            compensate=lambda _profile: self._delete_profile(user_id),
        )

        return {
            "ok": True,
            "created": True,
            "purpose": request.purpose,
            "user_id": user_id,
            "company_id": company_id,
            "company_code": company.get("company_code"),
            "employee_id": str(employee["id"]),
        }
