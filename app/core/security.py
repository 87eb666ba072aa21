"""
Credential primitives: the admin password hash, magic-link tokens and login codes.
"""
import hashlib
import secrets

from passlib.context import CryptContext

# Admin password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

OTP_LENGTH = 6
VERIFICATION_TOKEN_BYTES = 32


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a password against a stored bcrypt hash.

    A malformed hash counts as a mismatch.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password; used to produce ADMIN_PASSWORD_HASH."""
    return pwd_context.hash(password)


def generate_verification_token() -> str:
    """Opaque URL-safe token embedded in magic links."""
    return secrets.token_urlsafe(VERIFICATION_TOKEN_BYTES)


def generate_otp() -> str:
    """Numeric one-time code of OTP_LENGTH digits, never starting with zero."""
    low = 10 ** (OTP_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


def constant_time_equals(left: str, right: str) -> bool:
    return secrets.compare_digest(left.encode(), right.encode())


def fingerprint(secret: str) -> str:
    """Stable sha256 digest of a secret, safe to use as a storage key."""
    return hashlib.sha256(secret.encode()).hexdigest()
