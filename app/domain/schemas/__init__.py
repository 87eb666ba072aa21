"""
Domain schemas for the XENTRO backend.
"""

from .auth import *
from .common import *
from .institution import *

__all__ = [
    # Auth schemas
    "TokenType",
    "SubjectKind",
    "InstitutionRole",
    "TokenPayload",
    "InstitutionContext",
    "AdminContext",
    "AdminLogin",
    "TokenResponse",
    "OTPRequest",
    "OTPRequestResponse",
    "OTPVerify",
    "InstitutionLoginResponse",

    # Envelopes
    "DataResponse",
    "MessageResponse",

    # Institution schemas
    "ApplicationStatus",
    "InstitutionStatus",
    "InstitutionApplicationCreate",
    "InstitutionApplicationUpdate",
    "InstitutionApplicationRead",
    "ApplicationDecision",
    "SubmittedApplication",
    "VerifiedApplication",
    "DecidedApplication",
    "InstitutionCreate",
    "InstitutionUpdate",
    "InstitutionRead",
    "TeamMemberCreate",
    "TeamMemberUpdate",
    "TeamMemberRead",
]
