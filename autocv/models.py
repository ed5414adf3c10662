"""Data models for personas, application records and workflow progress."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


@dataclass
class Persona:
    """The single user persona every prompt is grounded on."""

    name: str = ""
    email: str = ""
    phone: str = ""
    linkedin: str = ""
    website: str = ""
    github: str = ""
    extra_info: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "linkedin": self.linkedin,
            "website": self.website,
            "github": self.github,
            "extraInfo": self.extra_info,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Persona":
        data = data or {}
        return cls(
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            linkedin=str(data.get("linkedin") or ""),
            website=str(data.get("website") or ""),
            github=str(data.get("github") or ""),
            extra_info=str(data.get("extraInfo") or ""),
        )


class PersonaError(ValueError):
    """Raised when a persona is missing the fields generation depends on."""


def validate_persona(persona: Persona) -> list[str]:
    errors: list[str] = []
    if not persona.name.strip():
        errors.append("Name is required. Set up your Persona first.")
    if not persona.email.strip():
        errors.append("Email is required. Set up your Persona first.")
    return errors


def require_persona(persona: Persona) -> Persona:
    errors = validate_persona(persona)
    if errors:
        raise PersonaError(" ".join(errors))
    return persona


class ApplicationStatus(str, Enum):
    DRAFT = "Draft"
    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    REJECTED = "Rejected"
    OFFER = "Offer"


class ProgressStep(str, Enum):
    """Progress events reported by the generation workflow, in display order."""

    IDLE = "idle"
    ANALYZING_IMAGE = "analyzing_image"
    GENERATING_RESUME = "generating_resume"
    GENERATING_CL = "generating_cl"
    GENERATING_EMAILS = "generating_emails"
    GENERATING_DM = "generating_dm"
    CALCULATING_METRICS = "calculating_metrics"
    COMPLETE = "complete"
    ERROR = "error"


# (camelCase key, ceiling)
METRIC_FIELDS: tuple[tuple[str, int], ...] = (
    ("skillsMatch", 60),
    ("roleSimilarities", 20),
    ("remotePolicy", 10),
    ("rndFocus", 10),
    ("startupBonus", 5),
    ("automationBonus", 10),
)


@dataclass(frozen=True)
class MatchMetrics:
    skills_match: float = 0
    role_similarities: float = 0
    remote_policy: float = 0
    rnd_focus: float = 0
    startup_bonus: float = 0
    automation_bonus: float = 0

    @property
    def total_score(self) -> float:
        # Not capped at 100: the six maxima add up to 115.
        return (
            self.skills_match
            + self.role_similarities
            + self.remote_policy
            + self.rnd_focus
            + self.startup_bonus
            + self.automation_bonus
        )

    def sub_scores(self) -> dict[str, float]:
        return {
            "skillsMatch": self.skills_match,
            "roleSimilarities": self.role_similarities,
            "remotePolicy": self.remote_policy,
            "rndFocus": self.rnd_focus,
            "startupBonus": self.startup_bonus,
            "automationBonus": self.automation_bonus,
        }

    def to_dict(self) -> dict[str, float]:
        data = self.sub_scores()
        data["totalScore"] = self.total_score
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "MatchMetrics":
        data = data or {}
        return cls(
            skills_match=data.get("skillsMatch", 0),
            role_similarities=data.get("roleSimilarities", 0),
            remote_policy=data.get("remotePolicy", 0),
            rnd_focus=data.get("rndFocus", 0),
            startup_bonus=data.get("startupBonus", 0),
            automation_bonus=data.get("automationBonus", 0),
        )


# Artifact key as it appears in stored records and download directives.
ARTIFACT_KEYS: dict[str, str] = {
    "resumeJson": "resume_json",
    "resumeDoc": "resume_doc",
    "coverLetter": "cover_letter",
    "recruiterEmail": "recruiter_email",
    "hmEmail": "hm_email",
    "dmMessage": "dm_message",
}


@dataclass(frozen=True)
class ArtifactBundle:
    resume_json: str | None = None
    resume_doc: str = ""
    cover_letter: str = ""
    recruiter_email: str = ""
    hm_email: str = ""
    dm_message: str = ""

    def get(self, key: str) -> str | None:
        """Look up an artifact by its stored key (``coverLetter`` etc.)."""
        attr = ARTIFACT_KEYS.get(key)
        if attr is None:
            return None
        return getattr(self, attr)

    def to_dict(self) -> dict[str, str | None]:
        return {key: getattr(self, attr) for key, attr in ARTIFACT_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ArtifactBundle":
        data = data or {}
        return cls(
            resume_json=data.get("resumeJson"),
            resume_doc=data.get("resumeDoc") or "",
            cover_letter=data.get("coverLetter") or "",
            recruiter_email=data.get("recruiterEmail") or "",
            hm_email=data.get("hmEmail") or "",
            dm_message=data.get("dmMessage") or "",
        )


@dataclass(frozen=True)
class ApplicationRecord:
    """
    One generated application package.

    Created once by the workflow; only ``status`` changes afterwards, and
    that goes through ``dataclasses.replace``.
    """

    id: str
    company_name: str
    job_summary: str
    date_created: datetime
    status: ApplicationStatus = ApplicationStatus.DRAFT
    metrics: MatchMetrics = field(default_factory=MatchMetrics)
    artifacts: ArtifactBundle = field(default_factory=ArtifactBundle)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "companyName": self.company_name,
            "jobSummary": self.job_summary,
            "dateCreated": _dt_to_iso(self.date_created),
            "status": self.status.value,
            "metrics": self.metrics.to_dict(),
            "artifacts": self.artifacts.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApplicationRecord":
        return cls(
            id=str(data["id"]),
            company_name=str(data.get("companyName") or ""),
            job_summary=str(data.get("jobSummary") or ""),
            date_created=_iso_to_dt(data.get("dateCreated")),
            status=ApplicationStatus(data.get("status") or ApplicationStatus.DRAFT.value),
            metrics=MatchMetrics.from_dict(data.get("metrics")),
            artifacts=ArtifactBundle.from_dict(data.get("artifacts")),
        )


def _dt_to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _iso_to_dt(value: str | None) -> datetime:
    if not value:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    # fromisoformat() before 3.11 rejects a trailing "Z".
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


__all__ = [
    "Persona",
    "PersonaError",
    "validate_persona",
    "require_persona",
    "ApplicationStatus",
    "ProgressStep",
    "METRIC_FIELDS",
    "MatchMetrics",
    "ARTIFACT_KEYS",
    "ArtifactBundle",
    "ApplicationRecord",
]
