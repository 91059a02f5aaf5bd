"""Signup code routes - no authentication required."""

from fastapi import APIRouter, Depends

from ..dependencies import get_code_issuer, get_onboarding
from ..models.signup import SendCodeRequest, SendCodeResponse, VerifyCodeRequest, VerifyCodeResponse
from ..services.code_issuer import CodeIssuer
from ..services.onboarding import SignupOnboarding

router = APIRouter()


@router.post("/send-code", response_model=SendCodeResponse)
async def send_code(
    request: SendCodeRequest,
    issuer: CodeIssuer = Depends(get_code_issuer),
):
    """Email a one-time 6-digit code for owner or employee signup."""
    await issuer.issue(request)
    return SendCodeResponse()


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    response_model_exclude_none=True,
)
async def verify_code(
    request: VerifyCodeRequest,
    onboarding: SignupOnboarding = Depends(get_onboarding),
):
    """
    Redeem a signup code and create the account.

    Owner signup creates the company, the owner profile and, when modules
    were picked, a pending subscription. Employee signup links the new
    account to the matching roster entry.
    """
    result = await onboarding.redeem(request)
    return VerifyCodeResponse(**result)
