#!/usr/bin/env python3
"""Generate an application package from a job-posting screenshot.

    python generate.py path/to/posting.png
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from autocv.config import api_key, ensure_dirs
from autocv.log import get_logger
from autocv.models import ProgressStep, validate_persona
from autocv.store import FileRecordStore

log = get_logger(__name__)

_STEP_LABELS: dict[ProgressStep, str] = {
    ProgressStep.ANALYZING_IMAGE: "Reading Job Description...",
    ProgressStep.GENERATING_CL: "Writing Cover Letter...",
    ProgressStep.GENERATING_EMAILS: "Drafting Emails to Recruiter & HM...",
    ProgressStep.GENERATING_DM: "Composing LinkedIn Message...",
    ProgressStep.CALCULATING_METRICS: "Calculating Match Score...",
    ProgressStep.COMPLETE: "All done.",
    ProgressStep.ERROR: "Analysis failed.",
}


def _check_setup(store: FileRecordStore) -> bool:
    """Return True if first-run setup is needed."""
    errors = validate_persona(store.get_persona())
    if not api_key():
        errors.append("GEMINI_API_KEY is not set (add it to .env).")
    for e in errors:
        log.error(e)
    if errors:
        log.error("Open the app (streamlit run app.py) to finish setup.")
    return bool(errors)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("image", type=Path, help="Screenshot of the job posting (PNG/JPG/WEBP)")
    args = parser.parse_args(argv)

    ensure_dirs()
    store = FileRecordStore()
    if _check_setup(store):
        return 1

    from autocv.workflow import AnalysisError, generate

    try:
        record = generate(
            args.image,
            store.get_persona(),
            lambda step: log.info(_STEP_LABELS.get(step, step.value)),
        )
    except AnalysisError as exc:
        log.error("%s Please try again. Ensure your API key is valid.", exc)
        return 1

    store.save_application(record)
    log.info("Saved application %s", record.id)
    log.info("  Company: %s", record.company_name)
    log.info("  Match score: %s", record.metrics.total_score)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
