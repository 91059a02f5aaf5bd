"""Per-request construction of the signup services from the app settings.

Each builder checks only the secrets its endpoint needs, so a missing
email key does not break code redemption.
"""

from fastapi import Depends, Request

from .config import Settings
from .services.code_issuer import CodeIssuer
from .services.email import EmailService
from .services.identity import SupabaseAuthAdmin
from .services.onboarding import SignupOnboarding
from .services.roster import EmployeeRoster
from .services.signup_codes import SignupCodeRepository
from .services.supabase import SupabaseRestClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _store(settings: Settings) -> SupabaseRestClient:
    return SupabaseRestClient(
        settings.supabase_url,
        settings.supabase_service_role_key,
        timeout_seconds=settings.http_timeout_seconds,
    )


def _identity(settings: Settings) -> SupabaseAuthAdmin:
    return SupabaseAuthAdmin(
        settings.supabase_url,
        settings.supabase_service_role_key,
        timeout_seconds=settings.http_timeout_seconds,
    )


def get_code_issuer(settings: Settings = Depends(get_settings)) -> CodeIssuer:
    settings.require("supabase_url", "supabase_service_role_key", "code_salt", "resend_api_key")
    email_service = EmailService(
        settings.resend_api_key,
        settings.resend_from,
        timeout_seconds=settings.http_timeout_seconds,
    )
    return CodeIssuer(
        SignupCodeRepository(_store(settings)),
        email_service,
        salt=settings.code_salt,
        ttl_minutes=settings.code_ttl_minutes,
    )


def get_onboarding(settings: Settings = Depends(get_settings)) -> SignupOnboarding:
    settings.require("supabase_url", "supabase_service_role_key", "code_salt")
    return SignupOnboarding(_store(settings), _identity(settings), salt=settings.code_salt)


def get_roster(settings: Settings = Depends(get_settings)) -> EmployeeRoster:
    settings.require("supabase_url", "supabase_service_role_key")
    return EmployeeRoster(_store(settings))
