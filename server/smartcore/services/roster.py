"""Companies and their employee rosters."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from ..errors import SignupError, SupabaseError
from ..models.signup import AddEmployeeRequest
from .codes import generate_employee_code
from .supabase import SupabaseRestClient

logger = logging.getLogger(__name__)

COMPANIES = "companies"
EMPLOYEES = "employees"
ROSTER_PAGE_SIZE = 200

COMPANY_NOT_FOUND_MESSAGE = "Company not found. Please check the company code and try again."
EMPLOYEE_NOT_FOUND_MESSAGE = (
    "We couldn't find your details under this company yet. Please ask your company admin "
    "to add you as an employee, then try again."
)
EMPLOYEE_ALREADY_LINKED_MESSAGE = "This employee is already linked to an account."


def normalize_name(full_name: Any) -> str:
    return str(full_name or "").strip().casefold()


def match_employee(roster: Iterable[dict], full_name: str) -> Optional[dict]:
    """First roster entry whose name equals ``full_name`` ignoring case and outer whitespace."""
    target = normalize_name(full_name)
    if not target:
        return None
    for employee in roster:
        if normalize_name(employee.get("full_name")) == target:
            return employee
    return None


class EmployeeRoster:
    def __init__(self, store: SupabaseRestClient):
        self.store = store

    async def get_company(self, company_id: Any) -> Optional[dict]:
        rows = await self.store.select(
            COMPANIES,
            {"id": company_id},
            columns="id,company_name,company_code",
            limit=1,
        )
        return rows[0] if rows else None

    async def find_company_by_code(self, company_code: str) -> Optional[dict]:
        rows = await self.store.select(
            COMPANIES,
            {"company_code": company_code.strip().upper()},
            columns="id,company_name,company_code",
            limit=1,
        )
        return rows[0] if rows else None

    async def company_code_exists(self, company_code: str) -> bool:
        rows = await self.store.select(COMPANIES, {"company_code": company_code}, columns="id", limit=1)
        return bool(rows)

    async def employee_code_exists(self, employee_code: str) -> bool:
        rows = await self.store.select(EMPLOYEES, {"employee_code": employee_code}, columns="id", limit=1)
        return bool(rows)

    async def create_company(
        self,
        *,
        company_name: str,
        company_code: str,
        owner_user_id: str,
        company_size: str,
        max_employees: Optional[int] = None,
    ) -> dict:
        rows = await self.store.insert(
            COMPANIES,
            {
                "company_name": company_name,
                "company_code": company_code,
                "owner_user_id": owner_user_id,
                "company_size": company_size,
                "max_employees": max_employees,
            },
        )
        company = rows[0] if rows else None
        if not company or not company.get("id"):
            raise SupabaseError(
                "Create company", message="Create company failed (no company id returned)"
            )
        logger.info("Created company %s (%s)", company["id"], company_code)
        return company

    async def delete_company(self, company_id: Any) -> None:
        await self.store.delete(COMPANIES, {"id": company_id})

    async def list_employees(self, company_id: Any) -> list[dict]:
        """Whole roster for a company, read page by page."""
        roster: list[dict] = []
        while True:
            page = await self.store.select(
                EMPLOYEES,
                {"company_id": company_id},
                order="id",
                limit=ROSTER_PAGE_SIZE,
                offset=len(roster),
            )
            roster.extend(page)
            if len(page) < ROSTER_PAGE_SIZE:
                return roster

    async def add_employee(self, request: AddEmployeeRequest) -> dict:
        """Add a roster entry that a person can later claim through employee signup."""
        company = await self.get_company(request.company_id)
        if not company:
            raise SignupError(COMPANY_NOT_FOUND_MESSAGE)
        stored_code = str(company.get("company_code") or "").strip().upper()
        if stored_code and stored_code != request.company_code:
            raise SignupError("company_code does not match this company.")

        roster = await self.list_employees(company["id"])
        if match_employee(roster, request.full_name):
            raise SignupError(
                "An employee with that name already exists in this company.", status_code=409
            )

        employee_code = await generate_employee_code(request.company_code, self.employee_code_exists)
        rows = await self.store.insert(
            EMPLOYEES,
            {
                "company_id": company["id"],
                "full_name": request.full_name,
                "job_title": request.job_title,
                "job_category": request.job_category,
                "employee_code": employee_code,
                "is_admin": request.is_admin,
            },
        )
        if not rows:
            raise SupabaseError("Add employee", message="Add employee failed (no row returned)")
        logger.info("Added employee %s to company %s", employee_code, company["id"])
        return rows[0]

    async def link_employee(self, employee_id: Any, user_id: str) -> dict:
        rows = await self.store.update(
            EMPLOYEES,
            {"id": employee_id, "user_id": None},
            {"user_id": user_id},
        )
        if not rows:
            raise SignupError(EMPLOYEE_ALREADY_LINKED_MESSAGE, status_code=409)
        logger.info("Linked employee %s to user %s", employee_id, user_id)
        return rows[0]

    async def unlink_employee(self, employee_id: Any) -> None:
        await self.store.update(EMPLOYEES, {"id": employee_id}, {"user_id": None}, returning=False)
