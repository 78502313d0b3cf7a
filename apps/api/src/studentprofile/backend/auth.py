"""Credential checks and Redis-backed sessions for the profile API."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import time
from dataclasses import asdict, dataclass
from typing import Any

from redis import Redis

from studentprofile.models import StudentProfile
from studentprofile.store import StudentStore

logger = logging.getLogger(__name__)


class RegistrationError(Exception):
    """Raised when a new account cannot be created."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class AuthenticatedUser:
    """Signed-in student and the profile loaded for them, if any."""

    email: str
    student_id: str
    profile: StudentProfile | None = None


@dataclass(frozen=True)
class AuthSession:
    """Server-side session payload for authenticated requests."""

    email: str
    student_id: str
    expires_at: int


def authenticate(
    store: StudentStore, email: str, password: str
) -> AuthenticatedUser | None:
    """Check credentials and load the matching profile.

    Unknown email and wrong password both return None so callers cannot tell
    which one failed.
    """
    clean_email = email.strip()
    if not clean_email or not password:
        return None

    record = store.fetch_auth_record(clean_email)
    if record is None or record.password is None:
        logger.info("Sign-in rejected: no credential row")
        return None

    if not secrets.compare_digest(
        record.password.encode("utf-8"), password.encode("utf-8")
    ):
        logger.info("Sign-in rejected: password mismatch")
        return None

    profile = store.fetch_profile_by_key("email", record.email)
    if profile is None and record.student_id:
        profile = store.fetch_profile_by_key("student_id", record.student_id)
    if profile is None:
        logger.warning("No profile found for student_id=%s", record.student_id)

    return AuthenticatedUser(
        email=record.email,
        student_id=record.student_id,
        profile=profile,
    )


def register(
    store: StudentStore, *, email: str, password: str, student_id: str
) -> AuthenticatedUser:
    """Create a credential row and, when missing, a starter profile."""
    clean_email = email.strip()
    if store.fetch_auth_record(clean_email) is not None:
        raise RegistrationError("user_exists")

    record = store.insert_auth_record(
        email=clean_email,
        password=password,
        student_id=student_id,
    )
    logger.info("Registered credentials for student_id=%s", record.student_id)

    profile = store.fetch_profile_by_key("student_id", record.student_id)
    if profile is None:
        profile = store.insert_profile(
            StudentProfile(student_id=record.student_id, email=record.email)
        )
        logger.info("Created starter profile for student_id=%s", record.student_id)
    return AuthenticatedUser(
        email=record.email, student_id=record.student_id, profile=profile
    )


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class RedisSessionStore:
    """Redis-backed storage for signed-in sessions."""

    def __init__(self, redis_conn: Redis, *, key_prefix: str = "profiles") -> None:
        self.redis_conn = redis_conn
        self.key_prefix = key_prefix

    async def save_session(
        self,
        *,
        session_id: str,
        payload: AuthSession,
        ttl_seconds: int,
    ) -> None:
        await asyncio.to_thread(
            self.redis_conn.setex,
            self._session_key(session_id),
            max(1, ttl_seconds),
            json.dumps(asdict(payload), separators=(",", ":")),
        )

    async def get_session(self, session_id: str) -> AuthSession | None:
        value = await self._get_json(self._session_key(session_id))
        if value is None:
            return None

        try:
            parsed = AuthSession(
                email=str(value["email"]),
                student_id=str(value["student_id"]),
                expires_at=int(value["expires_at"]),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Invalid auth session payload in Redis")
            return None

        if parsed.expires_at <= int(time.time()):
            await self.delete_session(session_id)
            return None

        return parsed

    async def delete_session(self, session_id: str) -> None:
        await asyncio.to_thread(self.redis_conn.delete, self._session_key(session_id))

    async def _get_json(self, key: str) -> dict[str, Any] | None:
        raw = await asyncio.to_thread(self.redis_conn.get, key)
        if raw is None:
            return None
        if not isinstance(raw, (bytes, str)):
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="ignore")

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    def _session_key(self, session_id: str) -> str:
        return f"{self.key_prefix}:session:{session_id}"
