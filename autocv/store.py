"""Persist the persona (YAML) and application records (JSON) with file locking."""
from __future__ import annotations

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Protocol, Sequence, runtime_checkable

import yaml

from autocv.config import APPLICATIONS_PATH, PERSONA_PATH
from autocv.log import get_logger
from autocv.models import ApplicationRecord, Persona

log = get_logger(__name__)


@runtime_checkable
class RecordStore(Protocol):
    """Storage port shared by the UI, the CLI and the assistant."""

    def get_persona(self) -> Persona:
        ...

    def save_persona(self, persona: Persona) -> None:
        ...

    def list_applications(self) -> Sequence[ApplicationRecord]:
        ...

    def get_application(self, app_id: str) -> ApplicationRecord | None:
        ...

    def save_application(self, record: ApplicationRecord) -> None:
        ...

    def delete_application(self, app_id: str) -> None:
        ...


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


@contextmanager
def _locked(path: Path, exclusive: bool = True) -> Iterator[None]:
    """Hold an advisory lock on ``<path>.lock`` for the duration of the block.

    The data file itself is swapped by ``os.replace``, so the lock lives on a
    sidecar that is never replaced.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path.with_name(path.name + ".lock"), "a", encoding="utf-8") as lf:
        _lock(lf, exclusive)
        try:
            yield
        finally:
            _unlock(lf)


def _atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to a temp file beside ``path``, then rename it over ``path``."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


_PERSONA_HEADER = (
    "# ============================================================\n"
    "# Candidate Persona: every generated document is grounded on this\n"
    "# Edit freely or use the Persona page\n"
    "# ============================================================\n\n"
)


class FileRecordStore:
    """
    ``RecordStore`` backed by two files.

    The persona is overwritten wholesale on save. Applications are a single
    JSON list, newest first: saving an existing id replaces it in place,
    a new id is prepended. Writes go to a temp file that replaces the data
    file in one rename, so a failed write leaves the previous contents
    intact. Each save or delete holds the exclusive lock across its
    read-modify-write.
    """

    def __init__(
        self,
        persona_path: Path | None = None,
        applications_path: Path | None = None,
    ) -> None:
        self.persona_path = persona_path or PERSONA_PATH
        self.applications_path = applications_path or APPLICATIONS_PATH

    # -- Persona --------------------------------------------------------------

    def get_persona(self) -> Persona:
        if not self.persona_path.exists():
            return Persona()
        with _locked(self.persona_path, exclusive=False):
            with open(self.persona_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        return Persona.from_dict(data if isinstance(data, dict) else {})

    def save_persona(self, persona: Persona) -> None:
        yaml_str = yaml.dump(
            persona.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True
        )
        with _locked(self.persona_path):
            _atomic_write(self.persona_path, _PERSONA_HEADER + yaml_str)
        log.info("Persona written → %s", self.persona_path)

    # -- Applications ---------------------------------------------------------

    def list_applications(self) -> list[ApplicationRecord]:
        with _locked(self.applications_path, exclusive=False):
            rows = self._read_rows()
        return [ApplicationRecord.from_dict(row) for row in rows]

    def get_application(self, app_id: str) -> ApplicationRecord | None:
        with _locked(self.applications_path, exclusive=False):
            rows = self._read_rows()
        for row in rows:
            if row.get("id") == app_id:
                return ApplicationRecord.from_dict(row)
        return None

    def save_application(self, record: ApplicationRecord) -> None:
        row = record.to_dict()
        with _locked(self.applications_path):
            rows = self._read_rows()
            for i, existing in enumerate(rows):
                if existing.get("id") == record.id:
                    rows[i] = row
                    log.debug("Updated %s @ %s", record.id, record.company_name)
                    break
            else:
                rows.insert(0, row)
                log.info("Saved application %s @ %s", record.id, record.company_name)
            self._write_rows(rows)

    def delete_application(self, app_id: str) -> None:
        with _locked(self.applications_path):
            rows = self._read_rows()
            kept = [r for r in rows if r.get("id") != app_id]
            self._write_rows(kept)
        if len(kept) != len(rows):
            log.info("Deleted application %s", app_id)

    # -- internal helpers (caller holds the lock) -----------------------------

    def _read_rows(self) -> list[dict]:
        if not self.applications_path.exists():
            return []
        text = self.applications_path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        data = json.loads(text)
        return data if isinstance(data, list) else []

    def _write_rows(self, rows: list[dict]) -> None:
        _atomic_write(self.applications_path, json.dumps(rows, indent=2, ensure_ascii=False))
