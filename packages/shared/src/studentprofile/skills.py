"""Skill normalization helpers shared across the API and data access layers."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class SkillCategory(StrEnum):
    """Display groups for student skills, in matching order."""

    PROGRAMMING_LANGUAGES = "Programming Languages"
    WEB_TECHNOLOGIES = "Web Technologies"
    DATABASES = "Databases"
    CLOUD_DEVOPS = "Cloud & DevOps"
    CYBERSECURITY = "Cybersecurity"
    NETWORKING = "Networking"
    OPERATING_SYSTEMS = "Operating Systems"
    TOOLS_SOFTWARE = "Tools & Software"
    OTHER = "Other"


class SkillLevel(StrEnum):
    """Proficiency labels shown next to a skill."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


DEFAULT_SKILL_LEVEL = SkillLevel.BEGINNER

# Single-letter language names ("C", "R") and "Go" would substring-match most
# skills, so they are spelled out. "C", "R" and "Go" still match these entries.
SKILL_TAXONOMY: dict[SkillCategory, tuple[str, ...]] = {
    SkillCategory.PROGRAMMING_LANGUAGES: (
        "Python",
        "JavaScript",
        "Java",
        "C++",
        "C#",
        "TypeScript",
        "PHP",
        "Ruby",
        "Golang",
        "Rust",
        "Swift",
        "Kotlin",
        "Scala",
        "R Language",
        "MATLAB",
        "Perl",
        "Dart",
        "Assembly",
        "Haskell",
    ),
    SkillCategory.WEB_TECHNOLOGIES: (
        "React",
        "Vue",
        "Angular",
        "HTML",
        "CSS",
        "Node.js",
        "Express",
        "Django",
        "Flask",
        "Tailwind",
        "Bootstrap",
        "jQuery",
        "Next.js",
        "Nuxt.js",
        "Gatsby",
        "Webpack",
        "Vite",
    ),
    SkillCategory.DATABASES: (
        "MongoDB",
        "MySQL",
        "PostgreSQL",
        "Redis",
        "SQLite",
        "Firebase",
        "Firestore",
        "DynamoDB",
        "Cassandra",
        "Neo4j",
        "SQL",
        "NoSQL",
    ),
    SkillCategory.CLOUD_DEVOPS: (
        "AWS",
        "Azure",
        "GCP",
        "Docker",
        "Kubernetes",
        "Jenkins",
        "Git",
        "GitHub",
        "GitLab",
        "CircleCI",
        "Travis CI",
        "Terraform",
        "Ansible",
        "Linux",
        "Unix",
    ),
    SkillCategory.CYBERSECURITY: (
        "Ethical Hacking",
        "Penetration Testing",
        "Cybersecurity",
        "Network Security",
        "Wireshark",
        "Burp Suite",
        "Metasploit",
        "Nmap",
        "OWASP",
        "SQL Injection",
        "XSS",
        "CSRF",
        "Vulnerability Assessment",
        "Security Auditing",
        "Cybersecurity Auditing",
        "Firewall",
        "IDS",
        "IPS",
        "SIEM",
        "Cryptography",
    ),
    SkillCategory.NETWORKING: (
        "Networking",
        "TCP/IP",
        "DNS",
        "DHCP",
        "VPN",
        "Router",
        "Switch",
        "Firewall",
        "Network Administration",
        "Network Monitoring",
        "Network Troubleshooting",
    ),
    SkillCategory.OPERATING_SYSTEMS: (
        "Linux",
        "Windows",
        "macOS",
        "Unix",
        "Ubuntu",
        "CentOS",
        "Red Hat",
        "Debian",
    ),
    SkillCategory.TOOLS_SOFTWARE: (
        "Wireshark",
        "Burp Suite",
        "Metasploit",
        "Nmap",
        "Figma",
        "Sketch",
        "Adobe XD",
        "Photoshop",
        "Illustrator",
        "VS Code",
        "IntelliJ",
        "Eclipse",
    ),
}


@dataclass(frozen=True)
class SkillList:
    """Skills column already stored as a flat array."""

    items: tuple[Any, ...]


@dataclass(frozen=True)
class SkillText:
    """Skills column stored as text, usually JSON, sometimes double-encoded."""

    text: str


@dataclass(frozen=True)
class SkillGroups:
    """Legacy skills column keyed by group name."""

    groups: tuple[tuple[str, Any], ...]


@dataclass(frozen=True)
class NoSkills:
    """Skills column is null, empty, or of an unsupported type."""


RawSkills = SkillList | SkillText | SkillGroups | NoSkills


@dataclass(frozen=True)
class ParsedSkill:
    """One skill decorated for display."""

    name: str
    category: SkillCategory
    level: SkillLevel


def classify_raw_skills(raw: object) -> RawSkills:
    """Tag an as-stored skills value with the shape it was stored in."""
    if raw is None:
        return NoSkills()
    if isinstance(raw, str):
        return SkillText(raw) if raw else NoSkills()
    if isinstance(raw, Mapping):
        return SkillGroups(tuple((str(key), value) for key, value in raw.items()))
    if isinstance(raw, (list, tuple)):
        return SkillList(tuple(raw))
    return NoSkills()


def _clean_skill_names(values: Iterable[Any]) -> list[str]:
    """Keep non-empty strings, trimmed, in first-seen order without repeats."""
    cleaned: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        name = value.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        cleaned.append(name)
    return cleaned


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Not a JSON value: {name}")


def _decode_json(text: str) -> tuple[bool, Any]:
    # NaN and Infinity are not JSON; pathological nesting exhausts the stack.
    try:
        return True, json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return False, None


def _strip_encoding_layer(text: str) -> str:
    """Drop one pair of wrapping quotes and unescape embedded quotes."""
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1]
    return text.replace('\\"', '"')


def _parse_skill_text(text: str) -> list[str]:
    decoded, value = _decode_json(text)
    if decoded and isinstance(value, list):
        return _clean_skill_names(value)

    first_scalar = value.strip() if decoded and isinstance(value, str) else ""

    # A JSON string that decodes to more JSON is double-encoded.
    redecoded, retry = _decode_json(_strip_encoding_layer(text))
    if redecoded:
        if isinstance(retry, list):
            return _clean_skill_names(retry)
        if isinstance(retry, str) and retry.strip():
            return [retry.strip()]

    if first_scalar:
        return [first_scalar]
    if decoded or redecoded:
        return []

    logger.debug("Skills text is not JSON, keeping it as one skill")
    name = text.strip()
    return [name] if name else []


def _flatten_skill_groups(groups: Sequence[tuple[str, Any]]) -> list[Any]:
    flattened: list[Any] = []
    for _, values in groups:
        if isinstance(values, (list, tuple)):
            flattened.extend(values)
        else:
            flattened.append(values)
    return flattened


def skill_level(skill: str) -> SkillLevel:
    """Placeholder proficiency for a skill.

    Profiles carry no proficiency data, so every skill gets the default level
    until the profile table stores one.
    """
    return DEFAULT_SKILL_LEVEL


class SkillsNormalizer:
    """Turn stored skills values into clean names and group them by category.

    Instances hold only the keyword taxonomy and never mutate it, so a single
    instance can be shared between requests.
    """

    def __init__(
        self, taxonomy: Mapping[SkillCategory, Sequence[str]] | None = None
    ) -> None:
        source = SKILL_TAXONOMY if taxonomy is None else taxonomy
        self._keywords = tuple(
            (
                category,
                tuple(keyword.lower() for keyword in keywords if keyword.strip()),
            )
            for category, keywords in source.items()
            if category != SkillCategory.OTHER
        )

    def parse(self, raw: object) -> list[str]:
        """Return the skill names held in a raw skills value.

        Never raises: unparseable text degrades to a single literal skill.
        """
        shape = classify_raw_skills(raw)
        if isinstance(shape, SkillList):
            return _clean_skill_names(shape.items)
        if isinstance(shape, SkillText):
            return _parse_skill_text(shape.text)
        if isinstance(shape, SkillGroups):
            return _clean_skill_names(_flatten_skill_groups(shape.groups))
        return []

    def match_category(self, skill: str) -> SkillCategory:
        """Return the first category with a keyword overlapping the skill."""
        lowered = skill.strip().lower()
        if not lowered:
            return SkillCategory.OTHER
        for category, keywords in self._keywords:
            for keyword in keywords:
                if keyword in lowered or lowered in keyword:
                    return category
        return SkillCategory.OTHER

    def categorize(self, skills: Sequence[str]) -> dict[SkillCategory, list[str]]:
        """Group skills by category, omitting categories with no skills."""
        buckets: dict[SkillCategory, list[str]] = {}
        for skill in skills:
            if not isinstance(skill, str) or not skill.strip():
                continue
            buckets.setdefault(self.match_category(skill), []).append(skill)

        ordered = [category for category, _ in self._keywords]
        ordered.append(SkillCategory.OTHER)
        return {
            category: buckets[category] for category in ordered if category in buckets
        }

    def describe(self, raw: object) -> list[ParsedSkill]:
        """Parse a raw value into display entries with category and level."""
        return [
            ParsedSkill(
                name=name,
                category=self.match_category(name),
                level=skill_level(name),
            )
            for name in self.parse(raw)
        ]


_default_normalizer = SkillsNormalizer()


def parse_skills(raw: object) -> list[str]:
    """Parse a raw skills value with the default taxonomy."""
    return _default_normalizer.parse(raw)


def categorize_skills(skills: Sequence[str]) -> dict[SkillCategory, list[str]]:
    """Categorize skill names with the default taxonomy."""
    return _default_normalizer.categorize(skills)


def describe_skills(raw: object) -> list[ParsedSkill]:
    """Describe each skill in a raw skills value for display."""
    return _default_normalizer.describe(raw)
