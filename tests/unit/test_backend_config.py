"""Unit tests for API settings validation."""

import pytest
from pydantic import ValidationError

from studentprofile.backend.config import ApiSettings


def test_samesite_is_normalized() -> None:
    settings = ApiSettings(auth_cookie_samesite=" Strict ")

    assert settings.auth_cookie_samesite == "strict"


def test_samesite_rejects_unknown_policy() -> None:
    with pytest.raises(ValidationError, match="AUTH_COOKIE_SAMESITE must be one of"):
        ApiSettings(auth_cookie_samesite="sometimes")


def test_samesite_none_requires_secure_cookie() -> None:
    """Browsers drop SameSite=None cookies that are not Secure."""
    with pytest.raises(ValidationError, match="requires AUTH_COOKIE_SECURE"):
        ApiSettings(auth_cookie_samesite="none", auth_cookie_secure=False)

    settings = ApiSettings(auth_cookie_samesite="none", auth_cookie_secure=True)
    assert settings.auth_cookie_samesite == "none"
