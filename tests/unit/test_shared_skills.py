"""Unit tests for shared skill normalization helpers."""

import pytest

from studentprofile.skills import (
    DEFAULT_SKILL_LEVEL,
    NoSkills,
    SkillCategory,
    SkillGroups,
    SkillList,
    SkillsNormalizer,
    SkillText,
    categorize_skills,
    classify_raw_skills,
    describe_skills,
    parse_skills,
)


@pytest.mark.parametrize("raw", [None, "", [], (), {}, "   "])
def test_parse_skills_returns_empty_for_absent_values(raw: object) -> None:
    """Missing or blank skills columns should parse to an empty list."""
    assert parse_skills(raw) == []


def test_parse_skills_filters_blank_and_non_string_entries() -> None:
    """List input should drop empty, null and non-string entries in order."""
    assert parse_skills(["Python", "Linux", ""]) == ["Python", "Linux"]
    assert parse_skills([None, "Git", 3, "  ", " Docker "]) == ["Git", "Docker"]


def test_parse_skills_drops_exact_repeats_only() -> None:
    """Repeats are removed by exact name; casing differences are kept."""
    assert parse_skills(["Python", "python", "Python"]) == ["Python", "python"]


def test_parse_skills_decodes_json_array_text() -> None:
    """JSON array text should decode into its string entries."""
    assert parse_skills('["Python","Linux","Networking"]') == [
        "Python",
        "Linux",
        "Networking",
    ]


def test_parse_skills_decodes_double_encoded_text() -> None:
    """A quoted, escaped JSON array should be unwrapped once and decoded."""
    assert parse_skills('"[\\"Python\\",\\"Linux\\"]"') == ["Python", "Linux"]


def test_parse_skills_keeps_plain_text_as_single_skill() -> None:
    """Non-JSON text should be treated as one literal skill name."""
    assert parse_skills("Python") == ["Python"]
    assert parse_skills("  Ethical Hacking ") == ["Ethical Hacking"]


@pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
def test_parse_skills_treats_non_json_constants_as_text(raw: str) -> None:
    assert parse_skills(raw) == [raw]


def test_parse_skills_keeps_deeply_nested_text_without_raising() -> None:
    """Text nested past the decoder's depth limit falls back to a literal."""
    raw = "[" * 100000

    assert parse_skills(raw) == [raw]
    assert SkillsNormalizer().categorize([raw]) == {SkillCategory.OTHER: [raw]}


def test_parse_skills_unwraps_json_string_scalar() -> None:
    """A JSON string scalar should become a single trimmed skill."""
    assert parse_skills('" Linux "') == ["Linux"]


def test_parse_skills_ignores_json_scalars_that_are_not_strings() -> None:
    """Decodable non-string scalars carry no skill names."""
    assert parse_skills("42") == []
    assert parse_skills("null") == []


def test_parse_skills_flattens_grouped_mapping_in_key_order() -> None:
    """Legacy grouped skills should flatten in key then value order."""
    raw = {"languages": ["Python"], "tools": ["Git"]}

    assert parse_skills(raw) == ["Python", "Git"]


def test_parse_skills_mapping_accepts_scalar_group_values() -> None:
    """String group values count as a single skill; other scalars are dropped."""
    raw = {"primary": "Rust", "secondary": ["Go", None], "count": 2}

    assert parse_skills(raw) == ["Rust", "Go"]


@pytest.mark.parametrize("raw", [42, 3.5, True, object()])
def test_parse_skills_returns_empty_for_unsupported_types(raw: object) -> None:
    """Unsupported raw types should not raise."""
    assert parse_skills(raw) == []


def test_classify_raw_skills_tags_each_storage_shape() -> None:
    """Raw values should map onto one of the known storage shapes."""
    assert isinstance(classify_raw_skills(None), NoSkills)
    assert isinstance(classify_raw_skills(7), NoSkills)
    assert classify_raw_skills('["a"]') == SkillText('["a"]')
    assert classify_raw_skills(["a"]) == SkillList(("a",))
    assert classify_raw_skills({"x": ["a"]}) == SkillGroups((("x", ["a"]),))


def test_categorize_skills_places_scenario_skills() -> None:
    """A typical profile should spread across the expected categories."""
    skills = parse_skills('["JavaScript","React","PostgreSQL","AWS","Nmap"]')

    assert skills == ["JavaScript", "React", "PostgreSQL", "AWS", "Nmap"]
    assert categorize_skills(skills) == {
        "Programming Languages": ["JavaScript"],
        "Web Technologies": ["React"],
        "Databases": ["PostgreSQL"],
        "Cloud & DevOps": ["AWS"],
        "Cybersecurity": ["Nmap"],
    }


def test_categorize_skills_first_declared_category_wins() -> None:
    """Keywords shared by two categories resolve to the earlier one."""
    assert categorize_skills(["Metasploit"]) == {
        SkillCategory.CYBERSECURITY: ["Metasploit"]
    }


def test_categorize_skills_unmatched_falls_into_other() -> None:
    """Skills matching no keyword should land in the catch-all group."""
    assert categorize_skills(["Quantum Basket Weaving"]) == {
        "Other": ["Quantum Basket Weaving"]
    }


def test_categorize_skills_matches_substrings_both_ways() -> None:
    """Abbreviations and elaborations should both match keywords."""
    grouped = categorize_skills(["Go", "Advanced PostgreSQL Tuning", "c"])

    assert grouped == {
        SkillCategory.PROGRAMMING_LANGUAGES: ["Go", "c"],
        SkillCategory.DATABASES: ["Advanced PostgreSQL Tuning"],
    }


def test_categorize_skills_is_case_insensitive() -> None:
    """Matching should ignore case on both sides."""
    assert categorize_skills(["wIRESHARK"]) == {"Cybersecurity": ["wIRESHARK"]}


def test_categorize_skills_preserves_every_skill_once() -> None:
    """The union of groups should equal the input list, order kept per group."""
    skills = ["Linux", "Figma", "Python", "Basket Weaving", "DNS", "Windows", "Java"]

    grouped = categorize_skills(skills)
    flattened = [skill for names in grouped.values() for skill in names]

    assert sorted(flattened) == sorted(skills)
    assert grouped[SkillCategory.PROGRAMMING_LANGUAGES] == ["Python", "Java"]
    assert list(grouped) == [
        SkillCategory.PROGRAMMING_LANGUAGES,
        SkillCategory.CLOUD_DEVOPS,
        SkillCategory.NETWORKING,
        SkillCategory.OPERATING_SYSTEMS,
        SkillCategory.TOOLS_SOFTWARE,
        SkillCategory.OTHER,
    ]


def test_categorize_skills_is_repeatable() -> None:
    """Repeated calls should return equal groupings."""
    skills = ["Docker", "Unknown Thing", "HTML"]

    assert categorize_skills(skills) == categorize_skills(skills)


def test_categorize_skills_empty_input_has_no_groups() -> None:
    """No skills should produce no categories, not even Other."""
    assert categorize_skills([]) == {}


def test_custom_taxonomy_orders_categories_as_declared() -> None:
    """An injected taxonomy should control both matching and output order."""
    normalizer = SkillsNormalizer(
        {
            SkillCategory.TOOLS_SOFTWARE: ["Nmap"],
            SkillCategory.CYBERSECURITY: ["Nmap", "OWASP"],
        }
    )

    grouped = normalizer.categorize(["OWASP", "Nmap", "Python"])

    assert list(grouped.items()) == [
        (SkillCategory.TOOLS_SOFTWARE, ["Nmap"]),
        (SkillCategory.CYBERSECURITY, ["OWASP"]),
        (SkillCategory.OTHER, ["Python"]),
    ]


def test_describe_skills_attaches_category_and_default_level() -> None:
    """Display entries should carry first-match category and stub level."""
    described = describe_skills(["Burp Suite", "Knitting"])

    assert [(item.name, item.category) for item in described] == [
        ("Burp Suite", SkillCategory.CYBERSECURITY),
        ("Knitting", SkillCategory.OTHER),
    ]
    assert {item.level for item in described} == {DEFAULT_SKILL_LEVEL}
