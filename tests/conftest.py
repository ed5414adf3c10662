from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from autocv.llm import JobPostingImage
from autocv.models import ApplicationRecord, ArtifactBundle, MatchMetrics, Persona

# PNG signature is enough; nothing decodes the pixels.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

RESUME_REPLY = json.dumps(
    {
        "companyName": "Acme Corp",
        "summary": "Acme is hiring a platform engineer. The role is remote.",
        "resume": {"personalDetails": {"name": "Ada Lovelace"}, "skills": ["Python"]},
        "resumeDoc": "# Ada Lovelace\nada@example.com",
    }
)

METRICS_REPLY = json.dumps(
    {
        "skillsMatch": 50,
        "roleSimilarities": 15,
        "remotePolicy": 10,
        "rndFocus": 8,
        "startupBonus": 5,
        "automationBonus": 0,
    }
)


def happy_replies() -> list[str]:
    return [
        RESUME_REPLY,
        "Dear Hiring Team, ...",
        "Hi Recruiter, ...",
        "Hi Hiring Manager, ...",
        "Hi! Loved your work at Acme.",
        METRICS_REPLY,
    ]


@pytest.fixture()
def persona() -> Persona:
    return Persona(
        name="Ada Lovelace",
        email="ada@example.com",
        phone="+44 20 0000 0000",
        linkedin="linkedin.com/in/ada",
        github="github.com/ada",
        extra_info="Wrote the first published algorithm for the Analytical Engine.",
    )


@pytest.fixture()
def image() -> JobPostingImage:
    return JobPostingImage(data=PNG_BYTES, mime_type="image/png")


def make_record(**overrides: object) -> ApplicationRecord:
    defaults: dict = dict(
        id="app-1",
        company_name="Acme Corp",
        job_summary="Platform engineer",
        date_created=datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc),
        metrics=MatchMetrics(skills_match=50, remote_policy=10),
        artifacts=ArtifactBundle(
            resume_json='{"skills": ["Python"]}',
            resume_doc="# Resume",
            cover_letter="Dear Acme",
            recruiter_email="Hi",
            hm_email="Hello",
            dm_message="Hey",
        ),
    )
    defaults.update(overrides)
    return ApplicationRecord(**defaults)
