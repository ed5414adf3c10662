from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from autocv.models import ApplicationStatus, MatchMetrics, ProgressStep
from autocv.workflow import (
    DEFAULT_COMPANY,
    DEFAULT_RESUME_DOC,
    DEFAULT_SUMMARY,
    AnalysisError,
    GenerationRun,
    RunState,
    WorkflowStateError,
    generate,
)
from tests.conftest import PNG_BYTES, happy_replies
from tests.mocks.scripted_chat_client import BrokenChatClient, ScriptedChatClient


def _run(image, persona, client):
    events: list[ProgressStep] = []
    record = generate(image, persona, events.append, client=client)
    return record, events


# -- happy path -------------------------------------------------------------

def test_generate_builds_complete_record(image, persona) -> None:
    client = ScriptedChatClient(happy_replies())
    record, _ = _run(image, persona, client)

    assert record.company_name == "Acme Corp"
    assert record.job_summary.startswith("Acme is hiring")
    assert record.status is ApplicationStatus.DRAFT
    assert json.loads(record.artifacts.resume_json)["skills"] == ["Python"]
    assert record.artifacts.resume_doc.startswith("# Ada Lovelace")
    assert record.artifacts.cover_letter == "Dear Hiring Team, ..."
    assert record.artifacts.recruiter_email == "Hi Recruiter, ..."
    assert record.artifacts.hm_email == "Hi Hiring Manager, ..."
    assert record.artifacts.dm_message == "Hi! Loved your work at Acme."
    assert record.metrics.total_score == 88


def test_progress_events_arrive_in_order(image, persona) -> None:
    _, events = _run(image, persona, ScriptedChatClient(happy_replies()))
    assert events == [
        ProgressStep.ANALYZING_IMAGE,
        ProgressStep.GENERATING_CL,
        ProgressStep.GENERATING_EMAILS,
        ProgressStep.GENERATING_DM,
        ProgressStep.CALCULATING_METRICS,
        ProgressStep.COMPLETE,
    ]


def test_all_exchanges_share_one_session(image, persona) -> None:
    client = ScriptedChatClient(happy_replies())
    _run(image, persona, client)

    assert len(client.sessions) == 1
    session = client.sessions[0]
    assert "Ada Lovelace" in session.system_instruction
    assert len(session.sent) == 6
    assert session.sent[0].image is not None
    assert session.sent[0].image.data == PNG_BYTES
    assert all(turn.image is None for turn in session.sent[1:])


def test_structured_output_requested_for_resume_and_metrics(image, persona) -> None:
    client = ScriptedChatClient(happy_replies())
    _run(image, persona, client)

    sent = client.sessions[0].sent
    assert sent[0].response_format == {"type": "json_object"}
    assert sent[5].response_format["type"] == "json_schema"
    assert all(turn.response_format is None for turn in sent[1:5])


def test_each_run_gets_a_fresh_id(image, persona) -> None:
    first, _ = _run(image, persona, ScriptedChatClient(happy_replies()))
    second, _ = _run(image, persona, ScriptedChatClient(happy_replies()))
    assert first.id != second.id


def test_date_created_is_run_time(image, persona) -> None:
    before = datetime.now(timezone.utc)
    record, _ = _run(image, persona, ScriptedChatClient(happy_replies()))
    assert before <= record.date_created <= datetime.now(timezone.utc)


# -- tolerant parsing ------------------------------------------------------

def test_unparseable_resume_reply_falls_back_to_defaults(image, persona) -> None:
    replies = happy_replies()
    replies[0] = "Sorry, I cannot read that image."
    record, events = _run(image, persona, ScriptedChatClient(replies))

    assert record.company_name == DEFAULT_COMPANY
    assert record.job_summary == DEFAULT_SUMMARY
    assert record.artifacts.resume_doc == DEFAULT_RESUME_DOC
    assert record.artifacts.resume_json is None
    assert events[-1] is ProgressStep.COMPLETE


def test_fenced_json_is_accepted(image, persona) -> None:
    replies = happy_replies()
    replies[0] = "```json\n" + replies[0] + "\n```"
    record, _ = _run(image, persona, ScriptedChatClient(replies))
    assert record.company_name == "Acme Corp"


def test_unparseable_metrics_score_zero(image, persona) -> None:
    replies = happy_replies()
    replies[5] = "not json"
    record, _ = _run(image, persona, ScriptedChatClient(replies))
    assert record.metrics == MatchMetrics()
    assert record.metrics.total_score == 0


def test_out_of_range_metrics_are_clamped(image, persona) -> None:
    replies = happy_replies()
    replies[5] = json.dumps({"skillsMatch": 75, "remotePolicy": 7, "startupBonus": -3})
    record, _ = _run(image, persona, ScriptedChatClient(replies))

    assert record.metrics.skills_match == 60
    assert record.metrics.remote_policy == 5
    assert record.metrics.startup_bonus == 0
    assert record.metrics.total_score == 65


# -- failures --------------------------------------------------------------

@pytest.mark.parametrize("fail_at", [0, 2, 5])
def test_failed_exchange_raises_and_reports_error(image, persona, fail_at: int) -> None:
    client = ScriptedChatClient(happy_replies(), fail_at=fail_at)
    events: list[ProgressStep] = []

    with pytest.raises(AnalysisError) as exc_info:
        generate(image, persona, events.append, client=client)

    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert events[-1] is ProgressStep.ERROR
    assert ProgressStep.COMPLETE not in events
    # nothing after the failed step is attempted
    assert client.call_count == fail_at + 1


def test_failure_at_step_three_stops_before_hm_email(image, persona) -> None:
    events: list[ProgressStep] = []
    with pytest.raises(AnalysisError):
        generate(image, persona, events.append, client=ScriptedChatClient(happy_replies(), fail_at=2))
    assert events == [
        ProgressStep.ANALYZING_IMAGE,
        ProgressStep.GENERATING_CL,
        ProgressStep.GENERATING_EMAILS,
        ProgressStep.ERROR,
    ]


def test_session_that_cannot_open_raises(image, persona) -> None:
    events: list[ProgressStep] = []
    with pytest.raises(AnalysisError):
        generate(image, persona, events.append, client=BrokenChatClient())
    assert events == [ProgressStep.ANALYZING_IMAGE, ProgressStep.ERROR]


def test_generate_from_path(tmp_path, persona) -> None:
    path = tmp_path / "posting.png"
    path.write_bytes(PNG_BYTES)
    client = ScriptedChatClient(happy_replies())
    record, _ = _run(path, persona, client)

    assert record.company_name == "Acme Corp"
    assert client.sessions[0].sent[0].image.mime_type == "image/png"


def test_generate_rejects_non_image_path(tmp_path, persona) -> None:
    path = tmp_path / "posting.txt"
    path.write_text("not an image")
    events: list[ProgressStep] = []
    client = ScriptedChatClient(happy_replies())

    with pytest.raises(AnalysisError):
        generate(path, persona, events.append, client=client)
    assert events == [ProgressStep.ERROR]
    assert client.call_count == 0


# -- state machine ---------------------------------------------------------

def test_steps_out_of_order_are_rejected(persona) -> None:
    run = GenerationRun(ScriptedChatClient(happy_replies()), persona)
    with pytest.raises(WorkflowStateError):
        run.write_cover_letter()
    with pytest.raises(WorkflowStateError):
        run.build_record()
    assert run.state is RunState.CREATED


def test_failed_run_stays_failed(image, persona) -> None:
    run = GenerationRun(ScriptedChatClient(happy_replies(), fail_at=1), persona)
    run.analyze_posting(image)
    with pytest.raises(AnalysisError):
        run.write_cover_letter()
    assert run.state is RunState.FAILED
    with pytest.raises(WorkflowStateError):
        run.write_recruiter_email()


def test_step_by_step_run(image, persona) -> None:
    run = GenerationRun(ScriptedChatClient(happy_replies()), persona)
    run.analyze_posting(image)
    assert run.state is RunState.STEP1_DONE
    assert run.company_name == "Acme Corp"
    run.write_cover_letter()
    run.write_recruiter_email()
    run.write_hiring_manager_email()
    run.write_networking_message()
    run.score_match()
    assert run.state is RunState.STEP6_DONE
    assert run.build_record().metrics.total_score == 88


def test_exchange_without_session_is_rejected(persona) -> None:
    run = GenerationRun(ScriptedChatClient(happy_replies()), persona)
    with pytest.raises(WorkflowStateError, match="no session is open"):
        run._exchange("cover_letter", "hello")
