"""Tests for function recognition across authoring styles."""

import re

import pytest

from supamigrate.models.function import TriggerKind
from supamigrate.services.function_scanner import FunctionScanner
from supamigrate.services.pattern_registry import (
    FAMILY_HTTP,
    PatternRegistry,
    RecognitionRule,
)

from .conftest import DOCUMENT_TRIGGER_SOURCE, HTTP_AND_CALLABLE_SOURCE, TINY_BODY_SOURCE


# --- Fixtures ---

@pytest.fixture
def scanner():
    return FunctionScanner()


# --- Direct declarations ---

class TestDirectDeclarations:
    def test_http_and_factory_callable(self, scanner):
        records = scanner.scan(HTTP_AND_CALLABLE_SOURCE, "index.js")
        assert [(r.name, r.trigger_kind) for r in records] == [
            ("helloWorld", TriggerKind.HTTP),
            ("getProfile", TriggerKind.CALLABLE),
        ]
        assert "collection('greetings')" in records[0].body
        assert "context.auth.uid" in records[1].body
        assert all(r.source_file == "index.js" for r in records)

    def test_empty_body_is_dropped(self, scanner):
        assert scanner.scan(TINY_BODY_SOURCE) == []

    def test_empty_content(self, scanner):
        assert scanner.scan("") == []

    def test_document_trigger_metadata(self, scanner):
        records = scanner.scan(DOCUMENT_TRIGGER_SOURCE)
        assert len(records) == 1
        record = records[0]
        assert record.name == "onOrderCreated"
        assert record.trigger_kind == TriggerKind.DOCUMENT_CREATE
        assert record.document_path == "users/{userId}/orders/{orderId}"
        assert record.document_event == "onCreate"
        assert "snap.data()" in record.body

    def test_on_write_maps_to_update(self, scanner):
        source = (
            "exports.syncUser = functions.firestore.document('users/{id}')"
            ".onWrite(async (change, context) => {\n  await sync(change.after);\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.trigger_kind == TriggerKind.DOCUMENT_UPDATE
        assert record.document_event == "onWrite"

    def test_region_chaining(self, scanner):
        source = (
            "exports.api = functions.region('europe-west1').https.onRequest((req, res) => {\n"
            "  res.send('hello from europe');\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.name == "api"
        assert record.trigger_kind == TriggerKind.HTTP

    def test_identity_blob_queue_schedule(self, scanner):
        source = """\
exports.welcome = functions.auth.user().onCreate(async (user) => {
  await sendWelcome(user.email);
});
exports.thumbnail = functions.storage.object().onFinalize(async (object) => {
  await makeThumbnail(object.name);
});
exports.audit = functions.pubsub.topic('audit-log').onPublish(async (message) => {
  await record(message.json);
});
exports.cleanup = functions.pubsub.schedule('every 5 minutes').onRun(async (context) => {
  await removeStaleSessions();
});
"""
        records = scanner.scan(source)
        assert [r.trigger_kind for r in records] == [
            TriggerKind.IDENTITY_CREATE,
            TriggerKind.BLOB_FINALIZE,
            TriggerKind.QUEUE_MESSAGE,
            TriggerKind.TIME_SCHEDULE,
        ]
        assert records[2].topic == "audit-log"
        assert records[3].schedule == "every 5 minutes"


# --- Second generation ---

class TestSecondGeneration:
    def test_document_created(self, scanner):
        source = (
            "export const onOrder = onDocumentCreated('orders/{orderId}', async (event) => {\n"
            "  const order = event.data.data();\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.trigger_kind == TriggerKind.DOCUMENT_CREATE
        assert record.document_path == "orders/{orderId}"
        assert "{orderId}" not in record.body

    def test_schedule_options_object(self, scanner):
        source = (
            "export const nightly = onSchedule({ schedule: '0 3 * * *' }, async (event) => {\n"
            "  await compactTables();\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.trigger_kind == TriggerKind.TIME_SCHEDULE
        assert record.schedule == "0 3 * * *"

    def test_blob_archived_is_finalize(self, scanner):
        source = (
            "export const archived = onObjectArchived(async (event) => {\n"
            "  await logArchive(event.data.name);\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.trigger_kind == TriggerKind.BLOB_FINALIZE
        assert record.blob_event == "onFinalize"


# --- Handler arguments ---

class TestHandlerArguments:
    def test_http_options_object_skipped(self, scanner):
        source = (
            "export const api = onRequest({ cors: true }, async (req, res) => {\n"
            "  const db = getFirestore();\n"
            "  res.json({ ok: true });\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.name == "api"
        assert "getFirestore()" in record.body
        assert "cors" not in record.body

    def test_callable_options_object_skipped(self, scanner):
        source = (
            "export const profile = onCall({ enforceAppCheck: true }, async (request) => {\n"
            "  return loadProfile(request.auth.uid);\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.trigger_kind == TriggerKind.CALLABLE
        assert "loadProfile(request.auth.uid)" in record.body
        assert "enforceAppCheck" not in record.body

    def test_blob_options_object_skipped(self, scanner):
        source = (
            "export const resize = onObjectFinalized({ bucket: 'uploads', region: 'eu' }, async (event) => {\n"
            "  await makeThumbnail(event.data.name);\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.trigger_kind == TriggerKind.BLOB_FINALIZE
        assert "makeThumbnail(event.data.name)" in record.body
        assert "uploads" not in record.body

    def test_function_expression_handler(self, scanner):
        source = (
            "exports.legacy = functions.https.onRequest(function (req, res) {\n"
            "  res.send('served by a function expression');\n});\n"
        )
        assert "function expression" in scanner.scan(source)[0].body

    def test_handler_passed_by_name(self, scanner):
        source = """\
async function handleOrders(req, res) {
  const orders = await listOrders(req.query.user);
  res.json(orders);
}

export const orders = onRequest({ cors: true }, handleOrders);
"""
        record = scanner.scan(source)[0]
        assert record.name == "orders"
        assert "listOrders(req.query.user)" in record.body

    def test_app_reference_does_not_steal_next_body(self, scanner):
        source = """\
const app = express();

exports.api = functions.https.onRequest(app);

exports.other = functions.https.onRequest((req, res) => {
  res.send('only other owns this body');
});
"""
        records = scanner.scan(source)
        assert [r.name for r in records] == ["other"]
        assert "only other owns this body" in records[0].body

    def test_expression_arrow_is_dropped(self, scanner):
        source = "exports.ping = functions.https.onRequest((req, res) => res.send('pong'));\n"
        assert scanner.scan(source) == []


# --- Factories ---

class TestFactories:
    def test_exported_factory_yields_one_record(self, scanner):
        source = """\
const processPaymentHandler = async (req, res) => {
  const amount = req.body.amount;
  res.json({ charged: amount });
};

export const processPayment = createHttpFunction('processPayment', processPaymentHandler);
"""
        records = scanner.scan(source)
        assert len(records) == 1
        assert records[0].name == "processPayment"
        assert records[0].rule == "http_exported_factory"
        assert "charged: amount" in records[0].body

    def test_factory_with_function_handler(self, scanner):
        source = """\
async function nightlyReportHandler(context) {
  await buildReport();
  await mailReport();
}

createScheduledFunction('nightlyReport', 'every day 02:30', nightlyReportHandler);
"""
        record = scanner.scan(source)[0]
        assert record.trigger_kind == TriggerKind.TIME_SCHEDULE
        assert record.schedule == "every day 02:30"
        assert "buildReport()" in record.body

    def test_factory_document_defaults_to_write(self, scanner):
        source = (
            "createFirestoreFunction('mirror', 'items/{id}', async (change) => {\n"
            "  await mirrorItem(change.after);\n});\n"
        )
        record = scanner.scan(source)[0]
        assert record.document_event == "onWrite"
        assert record.trigger_kind == TriggerKind.DOCUMENT_UPDATE


# --- Ordering and determinism ---

class TestOrdering:
    def test_records_sorted_by_offset(self, scanner):
        records = scanner.scan(HTTP_AND_CALLABLE_SOURCE + DOCUMENT_TRIGGER_SOURCE)
        starts = [r.span[0] for r in records]
        assert starts == sorted(starts)

    def test_scan_is_deterministic(self, scanner):
        first = [r.to_dict() for r in scanner.scan(HTTP_AND_CALLABLE_SOURCE, "a.js")]
        second = [r.to_dict() for r in FunctionScanner().scan(HTTP_AND_CALLABLE_SOURCE, "a.js")]
        assert first == second

    def test_custom_rule(self):
        registry = PatternRegistry([])
        registry.register(RecognitionRule(
            name="router",
            pattern=re.compile(r"\broute\(\s*'(?P<name>\w+)'\s*,"),
            family=FAMILY_HTTP,
        ))
        records = FunctionScanner(registry).scan("route('ping', (req, res) => { res.send('pong'); });")
        assert records[0].name == "ping"


class TestPatternRegistry:
    def test_duplicate_rule_name_rejected(self):
        registry = PatternRegistry()
        with pytest.raises(ValueError):
            registry.register(registry.get("http_direct"))

    def test_default_rules_present(self):
        registry = PatternRegistry()
        assert registry.get("document_v2") is not None
        assert registry.index_of(registry.get("http_direct")) == 0
