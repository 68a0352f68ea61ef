"""Tests for inventorying functions of a deployed Firebase project."""

import subprocess
from unittest.mock import patch

import pytest

from supamigrate.extractors.firebase_project_extractor import (
    FirebaseProjectExtractor,
    classify_trigger,
    parse_function_list,
)
from supamigrate.models.function import TriggerKind


RUN = "supamigrate.extractors.firebase_project_extractor.subprocess.run"

FUNCTIONS_TABLE = """\
┌────────────┬─────────┬──────────────────────────────────────────────┬─────────────┬────────┬──────────┐
│ Function   │ Version │ Trigger                                      │ Location    │ Memory │ Runtime  │
├────────────┼─────────┼──────────────────────────────────────────────┼─────────────┼────────┼──────────┤
│ helloWorld │ v1      │ https                                        │ us-central1 │ 256    │ nodejs18 │
├────────────┼─────────┼──────────────────────────────────────────────┼─────────────┼────────┼──────────┤
│ onUserMade │ v1      │ providers/firebase.auth/eventTypes/user.create │ us-central1 │ 256    │ nodejs18 │
└────────────┴─────────┴──────────────────────────────────────────────┴─────────────┴────────┴──────────┘
"""

HELLO_SOURCE = """\
exports.helloWorld = functions.https.onRequest((req, res) => {
  res.send('hello from the deployed source');
});
"""


# --- Fixtures ---

def completed(args, stdout="", returncode=0):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr="")


@pytest.fixture
def fake_cli():
    """firebase CLI that lists two functions and only serves source for one."""
    def run(command, **kwargs):
        if command[1] == "functions:list":
            return completed(command, FUNCTIONS_TABLE)
        if command[1] == "functions:code:get" and command[2] == "helloWorld":
            return completed(command, HELLO_SOURCE)
        return completed(command, returncode=1)
    return run


# --- Listing parser ---

class TestParseFunctionList:
    def test_table_rows(self):
        entries = parse_function_list(FUNCTIONS_TABLE)
        assert [e["name"] for e in entries] == ["helloWorld", "onUserMade"]
        assert "user.create" in entries[1]["trigger"]

    def test_plain_lines_with_urls(self):
        output = "helloWorld    https://us-central1-demo.cloudfunctions.net/helloWorld\n"
        entries = parse_function_list(output)
        assert entries == [{
            "name": "helloWorld",
            "trigger": "https",
            "url": "https://us-central1-demo.cloudfunctions.net/helloWorld",
        }]

    def test_empty_output(self):
        assert parse_function_list("") == []


class TestClassifyTrigger:
    @pytest.mark.parametrize("text,kind", [
        ("https", TriggerKind.HTTP),
        ("v2 callable", TriggerKind.CALLABLE),
        ("providers/cloud.firestore/eventTypes/document.create", TriggerKind.DOCUMENT_CREATE),
        ("providers/cloud.firestore/eventTypes/document.delete", TriggerKind.DOCUMENT_DELETE),
        ("providers/cloud.firestore/eventTypes/document.write", TriggerKind.DOCUMENT_UPDATE),
        ("providers/firebase.auth/eventTypes/user.delete", TriggerKind.IDENTITY_DELETE),
        ("google.storage.object.finalize", TriggerKind.BLOB_FINALIZE),
        ("google.pubsub.topic.publish", TriggerKind.QUEUE_MESSAGE),
        ("something unknown", TriggerKind.HTTP),
    ])
    def test_keywords(self, text, kind):
        assert classify_trigger(text) == kind


# --- Extraction ---

class TestFirebaseProjectExtractor:
    def test_records_for_every_listed_function(self, fake_cli):
        with patch(RUN, side_effect=fake_cli) as run:
            result = FirebaseProjectExtractor("demo").extract()

        assert [r.name for r in result.records] == ["helloWorld", "onUserMade"]
        assert run.call_args_list[0].args[0] == ["firebase", "functions:list", "--project", "demo"]
        assert result.metadata["project_id"] == "demo"

    def test_retrieved_source_is_scanned(self, fake_cli):
        with patch(RUN, side_effect=fake_cli):
            result = FirebaseProjectExtractor("demo").extract()

        hello = result.records[0]
        assert hello.rule == "http_direct"
        assert "hello from the deployed source" in hello.body

    def test_placeholder_when_source_unavailable(self, fake_cli):
        with patch(RUN, side_effect=fake_cli):
            result = FirebaseProjectExtractor("demo").extract()

        made = result.records[1]
        assert made.rule == "remote_inventory"
        assert made.trigger_kind == TriggerKind.IDENTITY_CREATE
        assert made.has_meaningful_body
        assert any("onUserMade" in w for w in result.warnings)

    def test_missing_cli(self):
        with patch(RUN, side_effect=FileNotFoundError("firebase")):
            result = FirebaseProjectExtractor("demo").extract()

        assert result.records == []
        assert any("Could not list functions" in w for w in result.warnings)

    def test_timeout(self):
        with patch(RUN, side_effect=subprocess.TimeoutExpired("firebase", 1)):
            result = FirebaseProjectExtractor("demo", timeout=1).extract()

        assert result.records == []
