"""Tests for Firebase to Supabase body rewriting."""

import pytest

from supamigrate.services.api_rewriter import REVIEW_MARKER, ApiRewriter, needs_review


# --- Fixtures ---

@pytest.fixture
def rewriter():
    return ApiRewriter()


# --- Data access ---

class TestDataAccess:
    def test_document_read(self, rewriter):
        body = (
            "{\n  const snapshot = await admin.firestore().collection('greetings').doc('default').get();\n"
            "  res.status(200).json({ message: snapshot.data() });\n}"
        )
        result = rewriter.rewrite(body)
        assert "supabaseClient.from('greetings').select().eq('id', 'default').single()" in result
        assert (
            "return new Response(JSON.stringify({ message: snapshot }), "
            "{ status: 200, headers: { ...corsHeaders, 'Content-Type': 'application/json' } })"
        ) in result
        assert REVIEW_MARKER not in result

    def test_where_operators(self, rewriter):
        result = rewriter.rewrite("db.collection('users').where('age', '>=', 18)")
        assert result == "db.from('users').gte('age', 18)"

    def test_array_contains(self, rewriter):
        result = rewriter.rewrite("q.where('tags', 'array-contains', tag)")
        assert result == "q.contains('tags', tag)"

    def test_unknown_where_operator_kept(self, rewriter):
        text = "q.where('tags', 'not-in', tags)"
        assert rewriter.rewrite(text) == text

    def test_set_becomes_upsert(self, rewriter):
        assert rewriter.rewrite("ref.set({ a: 1 })") == "ref.upsert({ a: 1 })"

    def test_server_timestamp(self, rewriter):
        result = rewriter.rewrite("{ updatedAt: admin.firestore.FieldValue.serverTimestamp() }")
        assert result == "{ updatedAt: new Date().toISOString() }"

    def test_caller_identity(self, rewriter):
        assert rewriter.rewrite("const uid = context.auth.uid;") == "const uid = user.id;"


# --- Responses ---

class TestResponses:
    def test_plain_send(self, rewriter):
        assert rewriter.rewrite("res.send('ok');") == "return new Response('ok');"

    def test_return_is_not_doubled(self, rewriter):
        result = rewriter.rewrite("return res.json(payload);")
        assert result.startswith("return new Response(JSON.stringify(payload)")
        assert "return return" not in result

    def test_status_send(self, rewriter):
        result = rewriter.rewrite("res.status(404).send('missing');")
        assert result == "return new Response('missing', { status: 404 });"

    def test_nested_payload(self, rewriter):
        result = rewriter.rewrite("res.json({ items: list.map((x) => ({ id: x })) });")
        assert "JSON.stringify({ items: list.map((x) => ({ id: x })) })" in result


# --- Review markers ---

class TestReviewMarkers:
    def test_unconverted_admin_call_is_flagged(self, rewriter):
        result = rewriter.rewrite("{\n  await admin.messaging().send(message);\n}")
        assert result.startswith(f"{REVIEW_MARKER}: Firebase Admin SDK call left unconverted\n")
        assert "admin.messaging().send(message)" in result
        assert needs_review(result)

    def test_converted_auth_client_not_flagged(self, rewriter):
        result = rewriter.rewrite("const u = await admin.auth().getUser(uid);")
        assert result == "const u = await supabaseClient.auth.admin.getUser(uid);"
        assert not needs_review(result)

    def test_several_reasons(self, rewriter):
        result = rewriter.rewrite("db.runTransaction(t => t.update(ref, { n: FieldValue.increment(1) }))")
        assert rewriter.residual_reasons(result) == [
            "Firestore FieldValue sentinel has no direct equivalent",
            "Firestore transaction needs a database function or RPC",
        ]
        assert result.count(REVIEW_MARKER) == 2


# --- Totality ---

class TestTotality:
    @pytest.mark.parametrize("body", [
        "",
        "res.status(",
        "res.status(200)",
        "res.json(((",
        "res.status(500).json(",
        ".where('a', '==')",
        ".doc(",
        ".doc()",
        "}}}{{{",
        "`unterminated ${template",
        "const x = 'res.send(' + \")\";",
    ])
    def test_malformed_input_never_raises(self, rewriter, body):
        assert isinstance(rewriter.rewrite(body), str)

    def test_unrecognized_text_passes_through(self, rewriter):
        text = "const total = items.reduce((a, b) => a + b, 0);"
        assert rewriter.rewrite(text) == text
