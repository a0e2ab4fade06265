"""Tests for configuration validation and session tokens."""

import pytest
from jose import jwt

from actas_api.auth.session import decode_session_token, issue_session_token
from actas_api.settings import Settings


def test_development_defaults_are_valid():
    Settings(environment="development").validate_production_settings()


def test_production_requires_link_secret():
    settings = Settings(environment="production", session_secret_key="real-secret")
    with pytest.raises(ValueError, match="LINK_SIGNING_SECRET"):
        settings.validate_production_settings()


def test_production_rejects_default_session_secret():
    settings = Settings(environment="production", link_signing_secret="s3cret")
    with pytest.raises(ValueError, match="SESSION_SECRET_KEY"):
        settings.validate_production_settings()


def test_unknown_approver_policy():
    with pytest.raises(ValueError, match="APPROVER_POLICY"):
        Settings(approver_policy="everyone").validate_production_settings()


def test_s3_backend_requires_credentials():
    with pytest.raises(ValueError, match="MINIO_ACCESS_KEY"):
        Settings(storage_backend="s3").validate_production_settings()


def test_session_token_round_trip():
    session = decode_session_token(issue_session_token(42, "admin"))
    assert session.user_id == 42
    assert session.is_admin


def test_foreign_token_is_rejected():
    token = jwt.encode({"sub": "42", "role": "admin"}, "another-secret", algorithm="HS256")
    assert decode_session_token(token) is None
    assert decode_session_token("garbage") is None
