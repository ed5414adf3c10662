from __future__ import annotations

import pytest

from autocv.directives import (
    APP_NOT_FOUND,
    FILE_NOT_FOUND,
    DirectiveResolutionError,
    DownloadDirective,
    export_filename,
    extension_for,
    parse_reply,
    resolve,
)
from autocv.models import ArtifactBundle
from tests.conftest import make_record
from tests.mocks.in_memory_record_store import InMemoryRecordStore


# -- parsing ---------------------------------------------------------------

def test_text_and_directive_interleave_in_order() -> None:
    segments = parse_reply("Here you go: [[DOWNLOAD|abc|coverLetter|Acme CL]] Good luck!")
    assert segments == [
        "Here you go: ",
        DownloadDirective(app_id="abc", artifact_key="coverLetter", label="Acme CL"),
        " Good luck!",
    ]


def test_reply_without_directives_is_one_segment() -> None:
    assert parse_reply("No files today.") == ["No files today."]


def test_empty_reply_has_no_segments() -> None:
    assert parse_reply("") == []


def test_adjacent_directives() -> None:
    segments = parse_reply(
        "[[DOWNLOAD|a|resumeDoc|Resume]][[DOWNLOAD|b|dmMessage|DM]]"
    )
    assert segments == [
        DownloadDirective("a", "resumeDoc", "Resume"),
        DownloadDirective("b", "dmMessage", "DM"),
    ]


def test_malformed_token_stays_literal() -> None:
    text = "Try [[DOWNLOAD|abc|coverLetter]] later"
    assert parse_reply(text) == [text]


# -- filenames -------------------------------------------------------------

@pytest.mark.parametrize(
    "key,ext",
    [("resumeJson", ".json"), ("resumeDoc", ".md"), ("coverLetter", ".txt"), ("dmMessage", ".txt")],
)
def test_extension_for(key: str, ext: str) -> None:
    assert extension_for(key) == ext


def test_export_filename_replaces_whitespace_in_label() -> None:
    assert export_filename("Acme Corp", "resumeJson", "Resume JSON") == "Acme Corp_Resume_JSON.json"


def test_export_filename_collapses_whitespace_runs() -> None:
    assert export_filename("Acme", "coverLetter", "Cover \t Letter\nFinal") == "Acme_Cover_Letter_Final.txt"


# -- resolution ------------------------------------------------------------

def test_resolve_builds_download() -> None:
    store = InMemoryRecordStore()
    store.save_application(make_record())

    f = resolve(DownloadDirective("app-1", "coverLetter", "Acme Cover Letter"), store)

    assert f.filename == "Acme Corp_Acme_Cover_Letter.txt"
    assert f.content == "Dear Acme"
    assert f.mime_type == "text/plain"


def test_resolve_resume_json_is_json() -> None:
    store = InMemoryRecordStore()
    store.save_application(make_record())
    f = resolve(DownloadDirective("app-1", "resumeJson", "Resume JSON"), store)
    assert f.mime_type == "application/json"
    assert f.filename.endswith(".json")


def test_resolve_unknown_application() -> None:
    with pytest.raises(DirectiveResolutionError, match=APP_NOT_FOUND):
        resolve(DownloadDirective("missing", "coverLetter", "CL"), InMemoryRecordStore())


@pytest.mark.parametrize("key", ["coverLetter", "notAnArtifact"])
def test_resolve_missing_artifact(key: str) -> None:
    store = InMemoryRecordStore()
    store.save_application(make_record(artifacts=ArtifactBundle(resume_doc="# Resume")))
    with pytest.raises(DirectiveResolutionError, match=FILE_NOT_FOUND):
        resolve(DownloadDirective("app-1", key, "Label"), store)


def test_resolve_reads_current_store_contents() -> None:
    store = InMemoryRecordStore()
    store.save_application(make_record())
    directive = DownloadDirective("app-1", "coverLetter", "CL")
    store.delete_application("app-1")
    with pytest.raises(DirectiveResolutionError):
        resolve(directive, store)
