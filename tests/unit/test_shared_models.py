"""Unit tests for shared profile models."""

import pytest
from pydantic import ValidationError

from studentprofile.models import ProfileUpdate, SkillsView, StudentProfile
from studentprofile.skills import SkillsNormalizer


def test_student_profile_ignores_unknown_columns() -> None:
    profile = StudentProfile.model_validate(
        {"student_id": "S-1", "first_name": "Ana", "legacy_flag": True}
    )

    assert profile.display_name == "Ana"
    assert not hasattr(profile, "legacy_flag")


def test_profile_update_tracks_explicitly_set_fields() -> None:
    """Explicit nulls are changes; omitted fields are not."""
    update = ProfileUpdate.model_validate({"skills": None, "projects": ["CTF bot"]})

    assert update.changes() == {"skills": None, "projects": ["CTF bot"]}


def test_profile_update_forbids_identity_fields() -> None:
    with pytest.raises(ValidationError):
        ProfileUpdate.model_validate({"email": "other@example.edu"})


def test_skills_view_from_raw_counts_and_groups() -> None:
    view = SkillsView.from_raw(
        ["Docker", "Docker", "Crochet"], normalizer=SkillsNormalizer()
    )

    assert view.skills == ["Docker", "Crochet"]
    assert view.total == 2
    assert view.categories == {"Cloud & DevOps": ["Docker"], "Other": ["Crochet"]}
    assert view.entries is None
