"""
Tests for security utilities.

Tests:
- Password hashing
- Access token creation and verification
- One-time code and token hashing
- Security edge cases (tampering, algorithm confusion)
"""

import pytest
from datetime import datetime, timedelta, timezone
import jwt as pyjwt

from core.config import settings
from core.exceptions import Unauthenticated
from core.security import (
    create_access_token,
    decode_access_token,
    generate_numeric_code,
    generate_token,
    hash_password,
    hash_token,
    hash_verification_code,
    verify_code_hash,
    verify_password,
)


class TestPasswordHashing:
    """Test password hashing functions."""

    def test_hash_password(self):
        hashed = hash_password("correct-horse")

        assert hashed != "correct-horse"
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        assert hash_password("correct-horse") != hash_password("correct-horse")

    def test_verify_password_success(self):
        assert verify_password("correct-horse", hash_password("correct-horse"))

    def test_verify_password_failure(self):
        assert not verify_password("wrong-horse", hash_password("correct-horse"))

    def test_verify_password_malformed_hash(self):
        assert not verify_password("correct-horse", "not-a-bcrypt-hash")


class TestAccessTokens:
    """Test JWT access tokens."""

    def test_round_trip(self):
        token = create_access_token(42, "recruiter")

        payload = decode_access_token(token)

        assert payload.user_id == 42
        assert payload.role == "recruiter"
        assert payload.expires_at > datetime.now(timezone.utc)

    def test_default_lifetime(self):
        payload = decode_access_token(create_access_token(1, "seeker"))
        lifetime = payload.expires_at - datetime.now(timezone.utc)

        assert lifetime <= timedelta(minutes=settings.access_token_expire_minutes)
        assert lifetime > timedelta(minutes=settings.access_token_expire_minutes - 1)

    def test_expired_token(self):
        token = create_access_token(1, "seeker", expires_delta=timedelta(seconds=-1))

        with pytest.raises(Unauthenticated) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Token has expired"

    def test_malformed_token(self):
        with pytest.raises(Unauthenticated):
            decode_access_token("invalid.token.here")

    def test_wrong_secret(self):
        token = pyjwt.encode(
            {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5), "type": "access"},
            "some-other-secret-that-is-long-enough",
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(Unauthenticated):
            decode_access_token(token)

    def test_wrong_token_type(self):
        token = pyjwt.encode(
            {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5), "type": "refresh"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(Unauthenticated):
            decode_access_token(token)

    def test_missing_subject(self):
        token = pyjwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(minutes=5), "type": "access"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(Unauthenticated):
            decode_access_token(token)

    def test_non_numeric_subject(self):
        token = pyjwt.encode(
            {"sub": "abc", "exp": datetime.now(timezone.utc) + timedelta(minutes=5), "type": "access"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(Unauthenticated):
            decode_access_token(token)


class TestOneTimeSecrets:
    """Test verification code and email token helpers."""

    def test_numeric_code_format(self):
        for _ in range(50):
            code = generate_numeric_code(6)
            assert len(code) == 6
            assert code.isdigit()

    def test_code_hash_is_bound_to_subject(self):
        code_hash = hash_verification_code("123456", "628123456789")

        assert verify_code_hash("123456", "628123456789", code_hash)
        assert not verify_code_hash("123456", "628999999999", code_hash)
        assert not verify_code_hash("654321", "628123456789", code_hash)

    def test_code_hash_hides_code(self):
        code_hash = hash_verification_code("123456", "628123456789")

        assert "123456" not in code_hash
        assert len(code_hash) == 64

    def test_generated_tokens_are_unique(self):
        assert len({generate_token() for _ in range(20)}) == 20

    def test_token_hash_is_stable(self):
        token = generate_token()

        assert hash_token(token) == hash_token(token)
        assert hash_token(token) != token


class TestSecurityEdgeCases:
    """Test security edge cases."""

    def test_jwt_none_algorithm(self):
        token = pyjwt.encode(
            {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5), "type": "access"},
            None,
            algorithm="none",
        )

        with pytest.raises(Unauthenticated):
            decode_access_token(token)

    def test_jwt_token_tampering(self):
        token = create_access_token(1, "seeker")
        header, payload, signature = token.split(".")
        forged = create_access_token(2, "recruiter").split(".")[1]

        with pytest.raises(Unauthenticated):
            decode_access_token(f"{header}.{forged}.{signature}")

    def test_unicode_password(self):
        hashed = hash_password("kata-sandi-rahasia-ü")
        assert verify_password("kata-sandi-rahasia-ü", hashed)
