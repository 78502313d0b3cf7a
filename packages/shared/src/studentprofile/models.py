"""Typed models for student profile records and skills views."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from studentprofile.skills import ParsedSkill, SkillsNormalizer


class StudentProfile(BaseModel):
    """Row of the student profile table."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    created_at: datetime | None = None
    student_id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    skills: Any = None
    projects: Any = None
    experience: Any = None
    certifications_and_licenses: Any = None
    job_preferences: Any = None
    profile_image: str | None = None

    @property
    def display_name(self) -> str:
        """First and last name joined, skipping missing parts."""
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts)


class AuthRecord(BaseModel):
    """Row of the credential table."""

    model_config = ConfigDict(extra="ignore")

    email: str
    student_id: str
    password: str | None = Field(default=None, repr=False)


class ProfileUpdate(BaseModel):
    """Editable profile fields; only fields that were set are written."""

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = None
    last_name: str | None = None
    skills: Any = None
    projects: Any = None
    experience: Any = None
    certifications_and_licenses: Any = None
    job_preferences: Any = None
    profile_image: str | None = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly provided by the caller."""
        return self.model_dump(exclude_unset=True)


class SkillEntry(BaseModel):
    """Single skill as shown on a profile page."""

    name: str
    category: str
    level: str

    @classmethod
    def from_parsed(cls, skill: ParsedSkill) -> "SkillEntry":
        return cls(
            name=skill.name,
            category=str(skill.category),
            level=str(skill.level),
        )


class SkillsView(BaseModel):
    """Normalized skills of one profile, flat and grouped."""

    skills: list[str] = Field(default_factory=list)
    categories: dict[str, list[str]] = Field(default_factory=dict)
    total: int = 0
    entries: list[SkillEntry] | None = None

    @classmethod
    def from_raw(
        cls,
        raw: object,
        *,
        normalizer: SkillsNormalizer,
        include_entries: bool = False,
    ) -> "SkillsView":
        """Build the view from an as-stored skills value."""
        skills = normalizer.parse(raw)
        categories = normalizer.categorize(skills)
        entries = None
        if include_entries:
            entries = [
                SkillEntry.from_parsed(item) for item in normalizer.describe(raw)
            ]
        return cls(
            skills=skills,
            categories={
                str(category): names for category, names in categories.items()
            },
            total=len(skills),
            entries=entries,
        )
