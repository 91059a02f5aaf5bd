from fastapi import APIRouter, Depends

from ..dependencies import get_onboarding, get_roster
from ..models.signup import (
    AddEmployeeRequest,
    AddEmployeeResponse,
    EmployeeLinkRequest,
    EmployeeLinkResponse,
)
from ..services.onboarding import SignupOnboarding
from ..services.roster import EmployeeRoster

router = APIRouter()


@router.post("/app-employee", response_model=AddEmployeeResponse)
async def add_employee(
    request: AddEmployeeRequest,
    roster: EmployeeRoster = Depends(get_roster),
):
    """Add an employee to a company's roster so they can sign up later."""
    employee = await roster.add_employee(request)
    return AddEmployeeResponse(employee=employee)


@router.post("/employee-link", response_model=EmployeeLinkResponse)
async def link_employee(
    request: EmployeeLinkRequest,
    onboarding: SignupOnboarding = Depends(get_onboarding),
):
    """Employee signup in one call: redeem the code and link the roster entry."""
    result = await onboarding.redeem(request.to_verify_request())
    return EmployeeLinkResponse(user_id=result["user_id"], company_id=result["company_id"])
