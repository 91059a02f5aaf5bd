from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, EmailStr, Field, field_validator, model_validator

from ..services.pricing import unknown_modules

MIN_PASSWORD_LENGTH = 8
CODE_LENGTH = 6


class SignupPurpose(str, Enum):
    OWNER_SIGNUP = "owner_signup"
    EMPLOYEE_SIGNUP = "employee_signup"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _normalize_email(value: Any) -> str:
    email = _as_text(value).lower()
    if not email:
        raise ValueError("Missing email")
    return email


def _normalize_purpose(value: Any) -> SignupPurpose:
    if isinstance(value, SignupPurpose):
        return value
    raw = _as_text(value) or SignupPurpose.OWNER_SIGNUP.value
    try:
        return SignupPurpose(raw)
    except ValueError as exc:
        raise ValueError("Unsupported purpose") from exc


def _normalize_company_code(value: Any) -> Optional[str]:
    return _as_text(value).upper() or None


def _require_company_code(value: Any) -> str:
    code = _as_text(value).upper()
    if not code:
        raise ValueError("Missing company_code")
    return code


def _require_full_name(value: Any) -> str:
    full_name = _as_text(value)
    if not full_name:
        raise ValueError("Missing full_name")
    return full_name


def _validate_code(value: Any) -> str:
    code = _as_text(value)
    if len(code) != CODE_LENGTH or not code.isdigit():
        raise ValueError("Missing 6-digit code")
    return code


def _validate_password(value: Any) -> str:
    password = "" if value is None else str(value)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError("Password must be at least 8 characters")
    return password


# Reusable field types; each normalises before the base type is checked
Email = Annotated[EmailStr, BeforeValidator(_normalize_email)]
Purpose = Annotated[SignupPurpose, BeforeValidator(_normalize_purpose)]
OptionalCompanyCode = Annotated[Optional[str], BeforeValidator(_normalize_company_code)]
RequiredCompanyCode = Annotated[str, BeforeValidator(_require_company_code)]
RequiredFullName = Annotated[str, BeforeValidator(_require_full_name)]
SignupCodeValue = Annotated[str, BeforeValidator(_validate_code)]
Password = Annotated[str, BeforeValidator(_validate_password)]
Text = Annotated[str, BeforeValidator(_as_text)]


class SendCodeRequest(BaseModel):
    email: Email = Field(default="", validate_default=True)
    purpose: Purpose = SignupPurpose.OWNER_SIGNUP
    company_code: OptionalCompanyCode = None
    full_name: Optional[str] = None

    @field_validator("full_name", mode="before")
    @classmethod
    def _full_name(cls, value: Any) -> Optional[str]:
        return _as_text(value) or None

    @model_validator(mode="after")
    def _company_code_for_employees(self):
        if self.purpose == SignupPurpose.EMPLOYEE_SIGNUP and not self.company_code:
            raise ValueError("Missing company_code")
        return self


class VerifyCodeRequest(BaseModel):
    """
    Redeem a signup code. Owner signup creates a company; employee signup
    links the account to an existing roster entry. For employee signup the
    company_code and full_name may be omitted when they were supplied at
    send-code time.
    """
    email: Email = Field(default="", validate_default=True)
    code: SignupCodeValue = Field(default="", validate_default=True)
    purpose: Purpose = SignupPurpose.OWNER_SIGNUP
    password: Password = Field(default="", validate_default=True)
    full_name: Text = ""

    # Owner signup
    company_name: Text = ""
    company_size: Text = ""
    max_employees: Optional[int] = Field(default=None, ge=1)
    module_ids: list[str] = Field(default_factory=list)

    # Employee signup
    company_code: OptionalCompanyCode = None

    @model_validator(mode="before")
    @classmethod
    def _accept_company_size_id(cls, data: Any) -> Any:
        # Older clients post company_size_id instead of company_size
        if isinstance(data, dict) and not data.get("company_size") and data.get("company_size_id"):
            data = {**data, "company_size": data["company_size_id"]}
        return data

    @field_validator("module_ids", mode="before")
    @classmethod
    def _module_ids(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        seen: set[str] = set()
        module_ids: list[str] = []
        for item in value:
            module_id = _as_text(item).lower()
            if module_id and module_id not in seen:
                seen.add(module_id)
                module_ids.append(module_id)
        unknown = unknown_modules(module_ids)
        if unknown:
            raise ValueError(f"Unknown module: {unknown[0]}")
        return module_ids

    @model_validator(mode="after")
    def _owner_fields(self):
        if self.purpose == SignupPurpose.OWNER_SIGNUP:
            if not self.company_name:
                raise ValueError("Missing company_name")
            if not self.company_size:
                raise ValueError("Missing company_size")
            if not self.full_name:
                raise ValueError("Missing full_name")
        return self


class AddEmployeeRequest(BaseModel):
    company_id: Text = Field(default="", validate_default=True)
    company_code: Text = Field(default="", validate_default=True)
    full_name: RequiredFullName = Field(default="", validate_default=True)
    job_title: Text = ""
    job_category: Text = ""
    is_admin: bool = False

    @field_validator("company_id")
    @classmethod
    def _company_id(cls, value: str) -> str:
        if not value:
            raise ValueError("Missing company_id")
        return value

    @field_validator("company_code")
    @classmethod
    def _company_code(cls, value: str) -> str:
        if len(value) < 3:
            raise ValueError("Missing company_code")
        return value.upper()

    @field_validator("is_admin", mode="before")
    @classmethod
    def _is_admin(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)


class EmployeeLinkRequest(BaseModel):
    email: Email = Field(default="", validate_default=True)
    password: Password = Field(default="", validate_default=True)
    code: SignupCodeValue = Field(default="", validate_default=True)
    company_code: RequiredCompanyCode = Field(default="", validate_default=True)
    full_name: RequiredFullName = Field(default="", validate_default=True)

    def to_verify_request(self) -> VerifyCodeRequest:
        return VerifyCodeRequest(
            email=self.email,
            code=self.code,
            purpose=SignupPurpose.EMPLOYEE_SIGNUP,
            password=self.password,
            full_name=self.full_name,
            company_code=self.company_code,
        )


# Responses

class SendCodeResponse(BaseModel):
    ok: bool = True


class VerifyCodeResponse(BaseModel):
    ok: bool = True
    created: bool = True
    purpose: SignupPurpose
    user_id: str
    company_id: str
    company_code: Optional[str] = None
    employee_id: Optional[str] = None
    subscription_id: Optional[str] = None


class AddEmployeeResponse(BaseModel):
    ok: bool = True
    employee: dict[str, Any]


class EmployeeLinkResponse(BaseModel):
    ok: bool = True
    user_id: str
    company_id: str
