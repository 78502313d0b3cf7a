"""FastAPI service for student sign-in, profile editing and skills views."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, Literal, cast

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from redis import Redis

from studentprofile.backend.auth import (
    AuthenticatedUser,
    AuthSession,
    RedisSessionStore,
    RegistrationError,
    authenticate,
    new_session_id,
    register,
)
from studentprofile.backend.config import settings
from studentprofile.logging import configure_logging
from studentprofile.models import ProfileUpdate, SkillsView, StudentProfile
from studentprofile.skills import SkillsNormalizer
from studentprofile.store import StudentStore, StudentStoreError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_LIST_LIMIT = 10
MAX_PROFILE_LIST_LIMIT = 100


class LoginRequest(BaseModel):
    """Email and password sign-in payload."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    """New account payload."""

    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)


class NormalizeSkillsRequest(BaseModel):
    """Raw skills value as stored on a profile row."""

    skills: Any = None


def _store_from_app(app: FastAPI) -> StudentStore:
    store = getattr(app.state, "store", None)
    if store is None:
        raise RuntimeError("Student store not configured")
    return cast(StudentStore, store)


def _session_store_from_app(app: FastAPI) -> RedisSessionStore | None:
    return getattr(app.state, "session_store", None)


def _normalizer_from_app(app: FastAPI) -> SkillsNormalizer:
    normalizer = getattr(app.state, "normalizer", None)
    if isinstance(normalizer, SkillsNormalizer):
        return normalizer
    return SkillsNormalizer()


async def _read_json(request: Request) -> tuple[Any, JSONResponse | None]:
    try:
        return await request.json(), None
    except Exception:
        return None, JSONResponse({"error": "invalid_json"}, status_code=400)


def _store_unavailable(exc: StudentStoreError) -> JSONResponse:
    logger.warning("Student store request failed: %s", exc)
    return JSONResponse({"error": "store_unavailable"}, status_code=502)


async def _current_session(request: Request) -> tuple[str | None, AuthSession | None]:
    store = _session_store_from_app(request.app)
    if store is None:
        return None, None

    session_id = request.cookies.get(settings.auth_session_cookie_name)
    if not session_id:
        return None, None

    session = await store.get_session(session_id)
    if session is None:
        return session_id, None

    return session_id, session


def _set_session_cookie(response: JSONResponse, session_id: str) -> None:
    samesite = cast(
        Literal["lax", "strict", "none"],
        settings.auth_cookie_samesite,
    )
    response.set_cookie(
        key=settings.auth_session_cookie_name,
        value=session_id,
        max_age=max(1, settings.auth_session_ttl_seconds),
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=samesite,
        path="/",
    )


def _clear_session_cookie(response: JSONResponse) -> None:
    response.delete_cookie(key=settings.auth_session_cookie_name, path="/")


def _unauthorized() -> JSONResponse:
    response = JSONResponse({"error": "unauthorized"}, status_code=401)
    _clear_session_cookie(response)
    return response


def _profile_payload(profile: StudentProfile | None) -> dict[str, Any] | None:
    if profile is None:
        return None
    return profile.model_dump(mode="json")


def _user_payload(user: AuthenticatedUser) -> dict[str, Any]:
    return {
        "email": user.email,
        "student_id": user.student_id,
        "profile": _profile_payload(user.profile),
    }


async def health_handler(request: Request) -> JSONResponse:
    """Report Redis and profile table reachability."""
    redis_conn = getattr(request.app.state, "redis_conn", None)

    try:
        redis_ok = redis_conn is not None and bool(
            await asyncio.to_thread(redis_conn.ping)
        )
    except Exception:
        redis_ok = False

    tables = await asyncio.to_thread(_store_from_app(request.app).check_connection)
    healthy = redis_ok and all(tables.values())
    payload = {
        "status": "healthy" if healthy else "degraded",
        "redis_connected": redis_ok,
        **{f"{name}_connected": ok for name, ok in tables.items()},
    }
    return JSONResponse(payload, status_code=200 if healthy else 503)


async def auth_login_handler(request: Request) -> JSONResponse:
    """Check email/password and start a session."""
    session_store = _session_store_from_app(request.app)
    if session_store is None:
        return JSONResponse({"error": "auth_not_ready"}, status_code=503)

    payload_data, error = await _read_json(request)
    if error is not None:
        return error
    try:
        payload = LoginRequest.model_validate(payload_data)
    except ValidationError as exc:
        return JSONResponse(
            {"error": "invalid_payload", "detail": str(exc)}, status_code=400
        )

    store = _store_from_app(request.app)
    try:
        user = await asyncio.to_thread(
            authenticate, store, payload.email, payload.password
        )
    except StudentStoreError as exc:
        return _store_unavailable(exc)

    if user is None:
        return JSONResponse({"error": "invalid_credentials"}, status_code=401)

    session_id = new_session_id()
    ttl_seconds = max(1, settings.auth_session_ttl_seconds)
    await session_store.save_session(
        session_id=session_id,
        payload=AuthSession(
            email=user.email,
            student_id=user.student_id,
            expires_at=int(time.time()) + ttl_seconds,
        ),
        ttl_seconds=ttl_seconds,
    )
    logger.info("Signed in student_id=%s", user.student_id)

    response = JSONResponse({"status": "signed_in", **_user_payload(user)})
    _set_session_cookie(response, session_id)
    return response


async def auth_signup_handler(request: Request) -> JSONResponse:
    """Create credentials for a new student."""
    if not settings.signup_enabled:
        return JSONResponse({"error": "signup_disabled"}, status_code=403)

    payload_data, error = await _read_json(request)
    if error is not None:
        return error
    try:
        payload = SignupRequest.model_validate(payload_data)
    except ValidationError as exc:
        return JSONResponse(
            {"error": "invalid_payload", "detail": str(exc)}, status_code=400
        )

    store = _store_from_app(request.app)
    try:
        user = await asyncio.to_thread(
            register,
            store,
            email=payload.email,
            password=payload.password,
            student_id=payload.student_id,
        )
    except RegistrationError as exc:
        return JSONResponse({"error": exc.code}, status_code=409)
    except StudentStoreError as exc:
        return _store_unavailable(exc)

    return JSONResponse(
        {"status": "created", **_user_payload(user)},
        status_code=201,
    )


async def auth_logout_handler(request: Request) -> JSONResponse:
    """Clear server-side session and auth cookie."""
    session_id, session = await _current_session(request)
    store = _session_store_from_app(request.app)
    if session_id and store is not None:
        await store.delete_session(session_id)
    if session is not None:
        logger.info("Signed out student_id=%s", session.student_id)

    response = JSONResponse({"status": "logged_out"}, status_code=200)
    _clear_session_cookie(response)
    return response


async def auth_me_handler(request: Request) -> JSONResponse:
    """Return the signed-in student and their profile."""
    _, session = await _current_session(request)
    if session is None:
        return _unauthorized()

    try:
        profile = await asyncio.to_thread(
            _store_from_app(request.app).fetch_profile_by_key,
            "student_id",
            session.student_id,
        )
    except StudentStoreError as exc:
        return _store_unavailable(exc)

    user = AuthenticatedUser(
        email=session.email, student_id=session.student_id, profile=profile
    )
    return JSONResponse({**_user_payload(user), "expires_at": session.expires_at})


async def _with_own_profile(
    request: Request,
    handler: Callable[[AuthSession, StudentProfile], Awaitable[JSONResponse]],
) -> JSONResponse:
    _, session = await _current_session(request)
    if session is None:
        return _unauthorized()

    try:
        profile = await asyncio.to_thread(
            _store_from_app(request.app).fetch_profile_by_key,
            "student_id",
            session.student_id,
        )
    except StudentStoreError as exc:
        return _store_unavailable(exc)

    if profile is None:
        return JSONResponse({"error": "profile_not_found"}, status_code=404)
    return await handler(session, profile)


async def profile_get_handler(request: Request) -> JSONResponse:
    """Return the signed-in student's profile record."""

    async def _respond(session: AuthSession, profile: StudentProfile) -> JSONResponse:
        return JSONResponse({"profile": _profile_payload(profile)})

    return await _with_own_profile(request, _respond)


async def profile_update_handler(request: Request) -> JSONResponse:
    """Apply a partial update to the signed-in student's profile."""
    _, session = await _current_session(request)
    if session is None:
        return _unauthorized()

    payload_data, error = await _read_json(request)
    if error is not None:
        return error
    if not isinstance(payload_data, dict):
        return JSONResponse({"error": "payload_must_be_object"}, status_code=400)
    try:
        update = ProfileUpdate.model_validate(payload_data)
    except ValidationError as exc:
        return JSONResponse(
            {"error": "invalid_payload", "detail": str(exc)}, status_code=400
        )

    try:
        profile = await asyncio.to_thread(
            _store_from_app(request.app).update_profile,
            session.student_id,
            update,
        )
    except StudentStoreError as exc:
        return _store_unavailable(exc)

    if profile is None:
        return JSONResponse({"error": "profile_not_found"}, status_code=404)
    return JSONResponse({"status": "updated", "profile": _profile_payload(profile)})


async def profile_search_handler(request: Request) -> JSONResponse:
    """Find a profile by first and last name, or list the newest profiles."""
    _, session = await _current_session(request)
    if session is None:
        return _unauthorized()

    store = _store_from_app(request.app)
    first_name = request.query_params.get("first_name", "").strip()
    last_name = request.query_params.get("last_name", "").strip()
    if first_name or last_name:
        if not (first_name and last_name):
            return JSONResponse({"error": "full_name_required"}, status_code=400)
        try:
            profile = await asyncio.to_thread(
                store.fetch_profile_by_name, first_name, last_name
            )
        except StudentStoreError as exc:
            return _store_unavailable(exc)
        if profile is None:
            return JSONResponse({"error": "profile_not_found"}, status_code=404)
        return JSONResponse({"profile": _profile_payload(profile)})

    try:
        limit = int(request.query_params.get("limit", DEFAULT_PROFILE_LIST_LIMIT))
    except ValueError:
        return JSONResponse({"error": "invalid_limit"}, status_code=400)
    if not 1 <= limit <= MAX_PROFILE_LIST_LIMIT:
        return JSONResponse({"error": "invalid_limit"}, status_code=400)

    try:
        profiles = await asyncio.to_thread(store.list_profiles, limit=limit)
    except StudentStoreError as exc:
        return _store_unavailable(exc)
    return JSONResponse(
        {
            "profiles": [_profile_payload(profile) for profile in profiles],
            "count": len(profiles),
        }
    )


async def own_skills_handler(request: Request) -> JSONResponse:
    """Return normalized and grouped skills of the signed-in student."""
    normalizer = _normalizer_from_app(request.app)

    async def _respond(session: AuthSession, profile: StudentProfile) -> JSONResponse:
        view = SkillsView.from_raw(profile.skills, normalizer=normalizer)
        return JSONResponse(view.model_dump(mode="json", exclude_none=True))

    return await _with_own_profile(request, _respond)


async def student_skills_handler(request: Request, student_id: str) -> JSONResponse:
    """Return normalized skills of any student, with per-skill details."""
    _, session = await _current_session(request)
    if session is None:
        return _unauthorized()

    clean_id = student_id.strip()
    if not clean_id:
        return JSONResponse({"error": "student_id_required"}, status_code=400)

    try:
        profile = await asyncio.to_thread(
            _store_from_app(request.app).fetch_profile_by_key,
            "student_id",
            clean_id,
        )
    except StudentStoreError as exc:
        return _store_unavailable(exc)

    if profile is None:
        return JSONResponse({"error": "profile_not_found"}, status_code=404)

    view = SkillsView.from_raw(
        profile.skills,
        normalizer=_normalizer_from_app(request.app),
        include_entries=True,
    )
    return JSONResponse(
        {
            "student_id": profile.student_id,
            "name": profile.display_name,
            **view.model_dump(mode="json", exclude_none=True),
        }
    )


async def normalize_skills_handler(request: Request) -> JSONResponse:
    """Normalize a raw skills value without touching the store."""
    payload_data, error = await _read_json(request)
    if error is not None:
        return error
    if not isinstance(payload_data, dict):
        return JSONResponse({"error": "payload_must_be_object"}, status_code=400)

    payload = NormalizeSkillsRequest.model_validate(payload_data)
    view = SkillsView.from_raw(
        payload.skills,
        normalizer=_normalizer_from_app(request.app),
        include_entries=True,
    )
    return JSONResponse(view.model_dump(mode="json", exclude_none=True))


def get_redis_connection() -> Redis:
    return Redis.from_url(
        settings.redis_url,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        socket_timeout=settings.redis_socket_timeout,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> Any:
    redis_conn = get_redis_connection()
    app.state.redis_conn = redis_conn
    app.state.session_store = RedisSessionStore(
        redis_conn, key_prefix=settings.redis_key_prefix
    )
    app.state.store = StudentStore(settings)

    try:
        yield
    finally:
        with contextlib.suppress(Exception):
            app.state.store.close()
        with contextlib.suppress(Exception):
            redis_conn.close()


def create_app(*, run_lifespan: bool = True) -> FastAPI:
    """Create configured FastAPI app."""
    app = FastAPI(
        title="Student Profile API",
        version="0.1.0",
        lifespan=_lifespan if run_lifespan else None,
    )
    app.state.normalizer = SkillsNormalizer()

    app.add_api_route("/", health_handler, methods=["GET"])
    app.add_api_route("/health", health_handler, methods=["GET"])

    app.add_api_route("/auth/login", auth_login_handler, methods=["POST"])
    app.add_api_route("/auth/signup", auth_signup_handler, methods=["POST"])
    app.add_api_route("/auth/logout", auth_logout_handler, methods=["POST"])
    app.add_api_route("/auth/me", auth_me_handler, methods=["GET"])

    app.add_api_route("/profiles", profile_search_handler, methods=["GET"])
    app.add_api_route("/profiles/me", profile_get_handler, methods=["GET"])
    app.add_api_route("/profiles/me", profile_update_handler, methods=["PATCH"])
    app.add_api_route("/profiles/me/skills", own_skills_handler, methods=["GET"])
    app.add_api_route(
        "/profiles/{student_id}/skills",
        student_skills_handler,
        methods=["GET"],
    )

    app.add_api_route("/skills/normalize", normalize_skills_handler, methods=["POST"])

    return app


def run() -> None:
    """Entrypoint for the profile API service."""
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
