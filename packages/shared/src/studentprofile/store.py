"""Student profile and credential access over the Supabase PostgREST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from studentprofile.models import AuthRecord, ProfileUpdate, StudentProfile
from studentprofile.settings import SharedSettings

logger = logging.getLogger(__name__)

PROFILE_LOOKUP_COLUMNS = frozenset({"student_id", "email"})


class StudentStoreError(Exception):
    """Raised when the profile store cannot complete a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StudentStore:
    """Thin PostgREST client for the student and credential tables."""

    def __init__(
        self,
        settings: SharedSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.client = httpx.Client(
            base_url=settings.supabase_rest_url,
            headers={
                "apikey": settings.supabase_key,
                "Authorization": f"Bearer {settings.supabase_key}",
                "Accept": "application/json",
            },
            timeout=settings.supabase_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def fetch_profile_by_key(self, column: str, value: str) -> StudentProfile | None:
        """Load one profile by student id or email."""
        if column not in PROFILE_LOOKUP_COLUMNS:
            raise ValueError(f"Unsupported profile lookup column: {column}")

        rows = self._select(
            self.settings.student_table,
            {column: f"eq.{value.strip()}", "select": "*", "limit": "1"},
        )
        if not rows:
            return None
        return self._to_profile(rows[0])

    def fetch_profile_by_name(
        self, first_name: str, last_name: str
    ) -> StudentProfile | None:
        """Case-insensitive lookup by first and last name."""
        rows = self._select(
            self.settings.student_table,
            {
                "first_name": f"ilike.{first_name.strip()}",
                "last_name": f"ilike.{last_name.strip()}",
                "select": "*",
                "limit": "1",
            },
        )
        if not rows:
            return None
        return self._to_profile(rows[0])

    def list_profiles(self, *, limit: int = 10) -> list[StudentProfile]:
        """Most recently created profiles first."""
        rows = self._select(
            self.settings.student_table,
            {
                "select": "*",
                "order": "created_at.desc",
                "limit": str(max(1, limit)),
            },
        )
        return [self._to_profile(row) for row in rows]

    def fetch_auth_record(self, email: str) -> AuthRecord | None:
        rows = self._select(
            self.settings.auth_table,
            {"email": f"eq.{email.strip()}", "select": "*", "limit": "1"},
        )
        if not rows:
            return None
        try:
            return AuthRecord.model_validate(rows[0])
        except ValidationError as exc:
            raise StudentStoreError("Unexpected credential payload") from exc

    def insert_auth_record(
        self, *, email: str, password: str, student_id: str
    ) -> AuthRecord:
        rows = self._write(
            "POST",
            self.settings.auth_table,
            payload={
                "email": email.strip(),
                "password": password,
                "student_id": student_id.strip(),
            },
        )
        if not rows:
            raise StudentStoreError("Credential insert returned no row")
        try:
            return AuthRecord.model_validate(rows[0])
        except ValidationError as exc:
            raise StudentStoreError("Unexpected credential payload") from exc

    def insert_profile(self, profile: StudentProfile) -> StudentProfile:
        payload = profile.model_dump(
            mode="json", exclude_none=True, exclude={"id", "created_at"}
        )
        rows = self._write("POST", self.settings.student_table, payload=payload)
        if not rows:
            raise StudentStoreError("Profile insert returned no row")
        return self._to_profile(rows[0])

    def update_profile(
        self, student_id: str, update: ProfileUpdate
    ) -> StudentProfile | None:
        """Apply set fields to a profile; returns None when no row matched."""
        changes = update.changes()
        if not changes:
            return self.fetch_profile_by_key("student_id", student_id)

        rows = self._write(
            "PATCH",
            self.settings.student_table,
            payload=changes,
            params={"student_id": f"eq.{student_id.strip()}"},
        )
        if not rows:
            return None
        logger.info(
            "Updated profile student_id=%s fields=%s",
            student_id,
            ",".join(sorted(changes)),
        )
        return self._to_profile(rows[0])

    def check_connection(self) -> dict[str, bool]:
        """Probe both tables; never raises."""
        status: dict[str, bool] = {}
        for name, table in (
            ("auth_table", self.settings.auth_table),
            ("student_table", self.settings.student_table),
        ):
            try:
                self._select(table, {"select": "student_id", "limit": "1"})
                status[name] = True
            except StudentStoreError as exc:
                logger.warning("Store probe failed for table=%s: %s", table, exc)
                status[name] = False
        return status

    def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        return self._rows(self._request("GET", table, params=params))

    def _write(
        self,
        method: str,
        table: str,
        *,
        payload: dict[str, Any],
        params: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        data = self._request(
            method,
            table,
            params=params,
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        return self._rows(data)

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            response = self.client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as exc:
            raise StudentStoreError(f"{method} {table} failed: {exc}") from exc

        if response.is_error:
            raise StudentStoreError(
                f"{method} {table} failed with HTTP {response.status_code}: "
                f"{_error_detail(response)}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StudentStoreError(f"{method} {table} returned non-JSON body") from exc

    @staticmethod
    def _rows(data: Any) -> list[dict[str, Any]]:
        if data is None:
            return []
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise StudentStoreError("Unexpected row payload from store")
        return [row for row in data if isinstance(row, dict)]

    @staticmethod
    def _to_profile(row: dict[str, Any]) -> StudentProfile:
        try:
            return StudentProfile.model_validate(row)
        except ValidationError as exc:
            raise StudentStoreError("Unexpected profile payload") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if isinstance(message, str) and message:
            return message
    return response.text[:200]
