"""Configuration for the student profile API service."""

from pydantic import model_validator

from studentprofile.settings import SharedSettings


class ApiSettings(SharedSettings):
    """API-specific settings layered on top of shared stack settings."""

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    auth_session_ttl_seconds: int = 28800
    auth_session_cookie_name: str = "student_profile_session"
    auth_cookie_secure: bool = False
    auth_cookie_samesite: str = "lax"
    signup_enabled: bool = True

    @model_validator(mode="after")
    def validate_auth_cookie_samesite(self) -> "ApiSettings":
        """Normalize and validate cookie SameSite policy."""
        normalized = self.auth_cookie_samesite.strip().lower()
        if normalized not in {"lax", "strict", "none"}:
            raise ValueError("AUTH_COOKIE_SAMESITE must be one of: lax, strict, none")
        if normalized == "none" and not self.auth_cookie_secure:
            raise ValueError(
                "AUTH_COOKIE_SAMESITE=none requires AUTH_COOKIE_SECURE=true"
            )
        self.auth_cookie_samesite = normalized
        return self


settings = ApiSettings()
