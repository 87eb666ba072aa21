"""
Tests for JWT Token Service.
"""
from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from app.core.config import get_settings
from app.core.exceptions import InvalidTokenError, TokenExpiredError
from app.domain.schemas.auth import SubjectKind, TokenType
from app.services.auth.token_service import TokenService

settings = get_settings()


class TestTokenService:
    """Test cases for TokenService."""

    @pytest.fixture
    def token_service(self):
        return TokenService()

    def test_institution_token_claims(self, token_service):
        entity_id = uuid4()
        user_id = uuid4()
        token = token_service.create_institution_token(
            "Founder@Acme.org", entity_id, SubjectKind.APPLICATION, user_id=user_id
        )

        payload = token_service.verify_institution_token(token)

        assert payload.type == TokenType.INSTITUTION
        assert payload.email == "founder@acme.org"
        assert payload.institution_id == str(entity_id)
        assert payload.kind == SubjectKind.APPLICATION
        assert payload.sub == str(user_id)
        assert payload.iss == settings.JWT_ISSUER
        assert payload.jti
        assert payload.exp > payload.iat

    def test_each_token_has_unique_jti(self, token_service):
        entity_id = uuid4()
        first = token_service.verify_token(
            token_service.create_institution_token("a@acme.org", entity_id, SubjectKind.INSTITUTION)
        )
        second = token_service.verify_token(
            token_service.create_institution_token("a@acme.org", entity_id, SubjectKind.INSTITUTION)
        )
        assert first.jti != second.jti

    def test_admin_token_rejected_as_institution_token(self, token_service):
        token = token_service.create_admin_token("admin@xentro.io", "platform-admin")

        with pytest.raises(InvalidTokenError):
            token_service.verify_institution_token(token)

    def test_institution_token_rejected_as_admin_token(self, token_service):
        token = token_service.create_institution_token("a@acme.org", uuid4(), SubjectKind.INSTITUTION)

        with pytest.raises(InvalidTokenError):
            token_service.verify_admin_token(token)

    def test_expired_token(self, token_service):
        token = token_service.create_institution_token(
            "a@acme.org",
            uuid4(),
            SubjectKind.APPLICATION,
            expires_delta=timedelta(seconds=-10),
        )

        with pytest.raises(TokenExpiredError):
            token_service.verify_institution_token(token)

    def test_wrong_signature(self, token_service):
        other = TokenService(secret_key="another-secret-key-that-is-long-enough-123")
        token = other.create_institution_token("a@acme.org", uuid4(), SubjectKind.APPLICATION)

        with pytest.raises(InvalidTokenError):
            token_service.verify_token(token)

    def test_wrong_issuer(self, token_service):
        other = TokenService(issuer="someone-else")
        token = other.create_admin_token("admin@xentro.io", "platform-admin")

        with pytest.raises(InvalidTokenError):
            token_service.verify_token(token)

    def test_empty_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.verify_token("")

    def test_garbage_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.verify_token("not-a-jwt")

    def test_institution_id_must_be_uuid(self, token_service):
        token = jwt.encode(
            {
                "type": "institution",
                "email": "a@acme.org",
                "institution_id": "not-a-uuid",
                "iat": 1,
                "exp": 4102444800,
                "iss": settings.JWT_ISSUER,
            },
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(InvalidTokenError):
            token_service.verify_institution_token(token)

    def test_subject_must_be_uuid(self, token_service):
        token = jwt.encode(
            {
                "type": "institution",
                "email": "a@acme.org",
                "institution_id": str(uuid4()),
                "sub": "user-42",
                "iat": 1,
                "exp": 4102444800,
                "iss": settings.JWT_ISSUER,
            },
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(InvalidTokenError):
            token_service.verify_institution_token(token)

    def test_legacy_token_without_kind(self, token_service):
        entity_id = uuid4()
        token = jwt.encode(
            {
                "type": "institution",
                "email": "a@acme.org",
                "institution_id": str(entity_id),
                "iat": 1,
                "exp": 4102444800,
                "iss": settings.JWT_ISSUER,
            },
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        payload = token_service.verify_institution_token(token)

        assert payload.kind is None
        assert payload.institution_id == str(entity_id)

    def test_missing_claims_rejected(self, token_service):
        token = jwt.encode(
            {"email": "a@acme.org", "iss": settings.JWT_ISSUER},
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(InvalidTokenError):
            token_service.verify_token(token)
