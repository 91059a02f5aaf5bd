from .signup_codes import router as signup_codes_router
from .employees import router as employees_router

__all__ = [
    "signup_codes_router",
    "employees_router",
]
