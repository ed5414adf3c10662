"""
Document generation workflow.

One chat session carries six ordered exchanges: resume analysis from the
screenshot, cover letter, recruiter email, hiring-manager email, networking
DM, and match scoring. Later prompts lean on what the session already holds
(the resume from step 1 is never re-sent), so steps run strictly in order and
a failed step ends the run.
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from autocv import prompts
from autocv.llm import (
    ChatClient,
    ChatSession,
    ImageReadError,
    JobPostingImage,
    json_mode,
    load_image,
    parse_json_object,
    schema_mode,
)
from autocv.log import get_logger
from autocv.models import (
    ApplicationRecord,
    ApplicationStatus,
    ArtifactBundle,
    MatchMetrics,
    Persona,
    ProgressStep,
)
from autocv.scoring import metrics_from_reply

log = get_logger(__name__)

ProgressCallback = Callable[[ProgressStep], None]

DEFAULT_COMPANY = "Unknown Company"
DEFAULT_SUMMARY = "No summary available"
DEFAULT_RESUME_DOC = "Resume generation failed."


class AnalysisError(RuntimeError):
    """A generation run failed and produced no record."""


class WorkflowStateError(RuntimeError):
    """A step was invoked before the step it depends on succeeded."""


class RunState(str, Enum):
    CREATED = "created"
    STEP1_DONE = "step1_done"
    STEP2_DONE = "step2_done"
    STEP3_DONE = "step3_done"
    STEP4_DONE = "step4_done"
    STEP5_DONE = "step5_done"
    STEP6_DONE = "step6_done"
    FAILED = "failed"


def _noop(_step: ProgressStep) -> None:
    return None


def _text_field(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _resume_json(data: dict[str, Any]) -> str | None:
    resume = data.get("resume")
    if resume is None:
        return None
    return json.dumps(resume, indent=2)


class GenerationRun:
    """Handle for a single run; owns the chat session and collected output.

    Each step method checks that the run is in the state left by the step
    before it. Any exchange failure moves the run to ``FAILED`` for good.
    """

    def __init__(
        self,
        client: ChatClient,
        persona: Persona,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._client = client
        self._persona = persona
        self._on_progress = on_progress or _noop
        self._session: ChatSession | None = None
        self.state = RunState.CREATED
        self.company_name = DEFAULT_COMPANY
        self.job_summary = DEFAULT_SUMMARY
        self.resume_json: str | None = None
        self.resume_doc = DEFAULT_RESUME_DOC
        self.cover_letter = ""
        self.recruiter_email = ""
        self.hm_email = ""
        self.dm_message = ""
        self.metrics = MatchMetrics()

    # -- steps ----------------------------------------------------------------

    def analyze_posting(self, image: JobPostingImage) -> None:
        self._require(RunState.CREATED)
        self._report(ProgressStep.ANALYZING_IMAGE)
        self._session = self._open_session()
        raw = self._exchange(
            "analyze_posting",
            prompts.resume_prompt(self._persona),
            image=image,
            response_format=json_mode(),
        )
        data = parse_json_object(raw)
        if not data:
            log.warning("Resume reply unusable, falling back to defaults")
        self.company_name = _text_field(data, "companyName", DEFAULT_COMPANY)
        self.job_summary = _text_field(data, "summary", DEFAULT_SUMMARY)
        self.resume_json = _resume_json(data)
        self.resume_doc = _text_field(data, "resumeDoc", DEFAULT_RESUME_DOC)
        self.state = RunState.STEP1_DONE
        log.info("Step 1 done: %s", self.company_name)

    def write_cover_letter(self) -> None:
        self._require(RunState.STEP1_DONE)
        self._report(ProgressStep.GENERATING_CL)
        self.cover_letter = self._exchange("cover_letter", prompts.COVER_LETTER_PROMPT)
        self.state = RunState.STEP2_DONE

    def write_recruiter_email(self) -> None:
        self._require(RunState.STEP2_DONE)
        self._report(ProgressStep.GENERATING_EMAILS)
        self.recruiter_email = self._exchange("recruiter_email", prompts.RECRUITER_EMAIL_PROMPT)
        self.state = RunState.STEP3_DONE

    def write_hiring_manager_email(self) -> None:
        # Shares the generating_emails event with step 3.
        self._require(RunState.STEP3_DONE)
        self.hm_email = self._exchange("hm_email", prompts.HIRING_MANAGER_EMAIL_PROMPT)
        self.state = RunState.STEP4_DONE

    def write_networking_message(self) -> None:
        self._require(RunState.STEP4_DONE)
        self._report(ProgressStep.GENERATING_DM)
        self.dm_message = self._exchange("dm_message", prompts.NETWORKING_DM_PROMPT)
        self.state = RunState.STEP5_DONE

    def score_match(self) -> None:
        self._require(RunState.STEP5_DONE)
        self._report(ProgressStep.CALCULATING_METRICS)
        raw = self._exchange(
            "metrics",
            prompts.METRICS_PROMPT,
            response_format=schema_mode("match_metrics", prompts.METRICS_SCHEMA),
        )
        data = parse_json_object(raw)
        if not data:
            log.warning("Metrics reply unusable, scoring all zeros")
        self.metrics = metrics_from_reply(data)
        self.state = RunState.STEP6_DONE

    def build_record(self) -> ApplicationRecord:
        self._require(RunState.STEP6_DONE)
        record = ApplicationRecord(
            id=str(uuid.uuid4()),
            company_name=self.company_name,
            job_summary=self.job_summary,
            date_created=datetime.now(timezone.utc),
            status=ApplicationStatus.DRAFT,
            metrics=self.metrics,
            artifacts=ArtifactBundle(
                resume_json=self.resume_json,
                resume_doc=self.resume_doc,
                cover_letter=self.cover_letter,
                recruiter_email=self.recruiter_email,
                hm_email=self.hm_email,
                dm_message=self.dm_message,
            ),
        )
        self._report(ProgressStep.COMPLETE)
        log.info(
            "Application ready for %s, match %s/115",
            record.company_name,
            record.metrics.total_score,
        )
        return record

    def fail(self, reason: BaseException | str) -> None:
        self.state = RunState.FAILED
        self._report(ProgressStep.ERROR)
        log.error("Generation failed: %s", reason)

    # -- internal helpers ------------------------------------------------------

    def _require(self, expected: RunState) -> None:
        if self.state is not expected:
            raise WorkflowStateError(
                f"Run is {self.state.value}, step needs {expected.value}"
            )

    def _report(self, step: ProgressStep) -> None:
        self._on_progress(step)

    def _open_session(self) -> ChatSession:
        try:
            return self._client.start_session(prompts.system_instruction(self._persona))
        except Exception as exc:
            self.fail(exc)
            raise AnalysisError(f"Could not open LLM session: {exc}") from exc

    def _exchange(self, name: str, message: str, **kwargs: Any) -> str:
        if self._session is None:
            raise WorkflowStateError(f"Run is {self.state.value}, no session is open")
        log.info("Step %s", name)
        try:
            return self._session.send(message, **kwargs)
        except Exception as exc:
            self.fail(exc)
            raise AnalysisError(f"{name} exchange failed: {exc}") from exc


def generate(
    image: JobPostingImage | Path | str,
    persona: Persona,
    on_progress: ProgressCallback | None = None,
    *,
    client: ChatClient | None = None,
) -> ApplicationRecord:
    """Run all six steps and return the finished record.

    ``image`` may be a loaded screenshot or a path to one. Nothing is
    persisted here; the caller saves the returned record.
    """
    if client is None:
        from autocv.llm import OpenAIChatClient

        try:
            client = OpenAIChatClient()
        except Exception as exc:
            (on_progress or _noop)(ProgressStep.ERROR)
            log.error("Could not create LLM client: %s", exc)
            raise AnalysisError(f"Could not create LLM client: {exc}") from exc
    run = GenerationRun(client, persona, on_progress)

    if not isinstance(image, JobPostingImage):
        try:
            image = load_image(image)
        except ImageReadError as exc:
            run.fail(exc)
            raise AnalysisError(str(exc)) from exc

    run.analyze_posting(image)
    run.write_cover_letter()
    run.write_recruiter_email()
    run.write_hiring_manager_email()
    run.write_networking_message()
    run.score_match()
    return run.build_record()
