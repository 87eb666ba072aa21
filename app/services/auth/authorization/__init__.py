"""
Authorization helpers for the institution context.
"""

from .roles import require_role, verify_institution_access

__all__ = [
    "require_role",
    "verify_institution_access",
]
