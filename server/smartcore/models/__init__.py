from .signup import (
    SignupPurpose,
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
    AddEmployeeRequest,
    AddEmployeeResponse,
    EmployeeLinkRequest,
    EmployeeLinkResponse,
)

__all__ = [
    "SignupPurpose",
    "SendCodeRequest",
    "SendCodeResponse",
    "VerifyCodeRequest",
    "VerifyCodeResponse",
    "AddEmployeeRequest",
    "AddEmployeeResponse",
    "EmployeeLinkRequest",
    "EmployeeLinkResponse",
]
