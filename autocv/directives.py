"""Download directives embedded in assistant replies.

The assistant writes ``[[DOWNLOAD|<applicationId>|<artifactKey>|<label>]]``
wherever it offers a file. Fields are split on ``|`` with no escaping, so a
label containing ``|`` or ``]]`` will not round-trip.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union

from autocv.models import ApplicationRecord
from autocv.store import RecordStore

DIRECTIVE_RE = re.compile(r"\[\[DOWNLOAD\|(.*?)\|(.*?)\|(.*?)\]\]")

_EXTENSIONS: dict[str, str] = {
    "resumeJson": ".json",
    "resumeDoc": ".md",
}

# Fixed labels the dashboard uses for its own download buttons.
DASHBOARD_LABELS: dict[str, str] = {
    "resumeDoc": "Resume",
    "coverLetter": "CoverLetter",
    "recruiterEmail": "RecruiterEmail",
    "hmEmail": "HMEmail",
    "dmMessage": "DM",
    "resumeJson": "Resume",
}

APP_NOT_FOUND = "Application not found!"
FILE_NOT_FOUND = "File not found!"


class DirectiveResolutionError(LookupError):
    """A directive points at an application or artifact that does not exist."""


@dataclass(frozen=True)
class DownloadDirective:
    app_id: str
    artifact_key: str
    label: str


@dataclass(frozen=True)
class DownloadFile:
    filename: str
    content: str
    mime_type: str = "text/plain"


Segment = Union[str, DownloadDirective]


def iter_segments(text: str) -> Iterator[Segment]:
    """Yield literal text and directives in the order they appear."""
    last = 0
    for match in DIRECTIVE_RE.finditer(text):
        if match.start() > last:
            yield text[last:match.start()]
        app_id, artifact_key, label = match.groups()
        yield DownloadDirective(app_id=app_id, artifact_key=artifact_key, label=label)
        last = match.end()
    if last < len(text):
        yield text[last:]


def parse_reply(text: str) -> list[Segment]:
    return list(iter_segments(text))


def extension_for(artifact_key: str) -> str:
    return _EXTENSIONS.get(artifact_key, ".txt")


def export_filename(company_name: str, artifact_key: str, label: str) -> str:
    """``Acme Corp`` + ``resumeJson`` + ``Resume JSON`` → ``Acme Corp_Resume_JSON.json``."""
    label_part = re.sub(r"\s+", "_", label)
    return f"{company_name}_{label_part}{extension_for(artifact_key)}"


def artifact_file(record: ApplicationRecord, artifact_key: str, label: str) -> DownloadFile:
    content = record.artifacts.get(artifact_key)
    if not content:
        raise DirectiveResolutionError(FILE_NOT_FOUND)
    return DownloadFile(
        filename=export_filename(record.company_name, artifact_key, label),
        content=content,
        mime_type="application/json" if artifact_key == "resumeJson" else "text/plain",
    )


def resolve(directive: DownloadDirective, store: RecordStore) -> DownloadFile:
    """Look the directive up in the store; raises instead of returning nothing."""
    record = store.get_application(directive.app_id)
    if record is None:
        raise DirectiveResolutionError(APP_NOT_FOUND)
    return artifact_file(record, directive.artifact_key, directive.label)
