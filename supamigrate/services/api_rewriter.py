"""Rewrites Firebase SDK idioms in function bodies into Supabase equivalents."""

import re
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple, Union

from .body_extractor import find_call_arguments

logger = logging.getLogger(__name__)


REVIEW_MARKER = "// MIGRATION_REVIEW"

JSON_HEADERS = "{ ...corsHeaders, 'Content-Type': 'application/json' }"

# Firestore where() operators and their PostgREST filter methods
WHERE_OPERATORS = {
    "==": "eq",
    "===": "eq",
    "!=": "neq",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "in": "in",
    "array-contains": "contains",
}

# Constructs left untouched by the rule table, with the reason reported to reviewers
RESIDUAL_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(r"(?<![\w.])admin\s*\."), "Firebase Admin SDK call left unconverted"),
    (re.compile(r"(?<![\w.])functions\s*\."), "Firebase Functions API left unconverted"),
    (re.compile(r"firebase-functions"), "firebase-functions import left in place"),
    (re.compile(r"\bFieldValue\s*\."), "Firestore FieldValue sentinel has no direct equivalent"),
    (re.compile(r"\.onSnapshot\s*\("), "Realtime listener needs a Supabase channel subscription"),
    (re.compile(r"\brunTransaction\s*\("), "Firestore transaction needs a database function or RPC"),
    (re.compile(r"\.batch\s*\(\s*\)"), "Firestore batched write needs a bulk insert or RPC"),
]

Replacement = Union[str, Callable[[str], str]]


@dataclass
class RewriteRule:
    """One substitution applied to a body, in table order."""
    name: str
    pattern: Optional[Pattern]
    replacement: Replacement

    def apply(self, text: str) -> str:
        if self.pattern is None:
            # Callable rules scan the text themselves
            return self.replacement(text)
        return self.pattern.sub(self.replacement, text)


def _split_arguments(arguments: str) -> List[str]:
    """Split an argument list on top-level commas."""
    parts = []
    depth = 0
    quote = None
    current = []
    for char in arguments:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in "'\"`":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def _rewrite_calls(text: str, call: Pattern, convert: Callable[[List[str], re.Match], Optional[str]]) -> str:
    """
    Rewrite every call whose parenthesized arguments balance.

    Args:
        text: Body text
        call: Pattern matching up to and including the opening "("
        convert: Receives the split arguments and the match, returns the
            replacement or None to keep the call verbatim

    Returns:
        Rewritten text
    """
    output = []
    position = 0
    while True:
        match = call.search(text, position)
        if match is None:
            break
        open_paren = match.end() - 1
        close = find_call_arguments(text, open_paren)
        if close is None:
            output.append(text[position:match.end()])
            position = match.end()
            continue
        arguments = _split_arguments(text[open_paren + 1:close - 1])
        replacement = convert(arguments, match)
        if replacement is None:
            output.append(text[position:match.end()])
            position = match.end()
            continue
        output.append(text[position:match.start()])
        output.append(replacement)
        position = close
    output.append(text[position:])
    return "".join(output)


_DOC_CALL = re.compile(r"\.doc\s*\(")
_WHERE_CALL = re.compile(r"\.where\s*\(")
_STATUS_CALL = re.compile(r"(?:\breturn\s+)?\bres\s*\.\s*status\s*\(")
_RESPONSE_CALL = re.compile(r"(?:\breturn\s+)?\bres\s*\.\s*(?P<method>json|send)\s*\(")
_CHAINED_METHOD = re.compile(r"\s*\.\s*(?P<method>json|send)\s*\(")


def _rewrite_doc(text: str) -> str:
    def convert(arguments, match):
        if len(arguments) != 1 or not arguments[0]:
            return None
        return f".select().eq('id', {arguments[0]}).single()"
    return _rewrite_calls(text, _DOC_CALL, convert)


def _rewrite_where(text: str) -> str:
    def convert(arguments, match):
        if len(arguments) != 3:
            return None
        operator = arguments[1].strip("'\"`")
        method = WHERE_OPERATORS.get(operator)
        if method is None:
            return None
        return f".{method}({arguments[0]}, {arguments[2]})"
    return _rewrite_calls(text, _WHERE_CALL, convert)


def _rewrite_status_response(method: str) -> Callable[[str], str]:
    """Build the rewrite for res.status(N).json(X) or res.status(N).send(X)."""
    def rewrite(text: str) -> str:
        output = []
        position = 0
        while True:
            match = _STATUS_CALL.search(text, position)
            if match is None:
                break
            status_close = find_call_arguments(text, match.end() - 1)
            chained = _CHAINED_METHOD.match(text, status_close) if status_close else None
            if chained is None or chained.group("method") != method:
                output.append(text[position:match.end()])
                position = match.end()
                continue
            payload_close = find_call_arguments(text, chained.end() - 1)
            if payload_close is None:
                output.append(text[position:match.end()])
                position = match.end()
                continue
            status = text[match.end():status_close - 1].strip()
            payload = text[chained.end():payload_close - 1].strip()
            if method == "json":
                replacement = (
                    f"return new Response(JSON.stringify({payload}), "
                    f"{{ status: {status}, headers: {JSON_HEADERS} }})"
                )
            else:
                replacement = f"return new Response({payload}, {{ status: {status} }})"
            output.append(text[position:match.start()])
            output.append(replacement)
            position = payload_close
        output.append(text[position:])
        return "".join(output)
    return rewrite


def _rewrite_plain_response(method: str) -> Callable[[str], str]:
    """Build the rewrite for res.json(X) or res.send(X)."""
    def convert(arguments, match):
        if match.group("method") != method:
            return None
        payload = ", ".join(arguments)
        if method == "json":
            return f"return new Response(JSON.stringify({payload}), {{ headers: {JSON_HEADERS} }})"
        return f"return new Response({payload})"
    return lambda text: _rewrite_calls(text, _RESPONSE_CALL, convert)


DEFAULT_RULES: List[RewriteRule] = [
    RewriteRule(
        "server_timestamp",
        re.compile(r"(?:\badmin\s*\.\s*firestore\s*\.\s*)?\bFieldValue\s*\.\s*serverTimestamp\s*\(\s*\)"),
        "new Date().toISOString()",
    ),
    RewriteRule(
        "firestore_client",
        re.compile(r"\badmin\s*\.\s*firestore\s*\(\s*\)|\bgetFirestore\s*\(\s*\)"),
        "supabaseClient",
    ),
    RewriteRule(
        "auth_client",
        re.compile(r"\badmin\s*\.\s*auth\s*\(\s*\)|\bgetAuth\s*\(\s*\)"),
        "supabaseClient.auth.admin",
    ),
    RewriteRule(
        "storage_client",
        re.compile(r"\badmin\s*\.\s*storage\s*\(\s*\)|\bgetStorage\s*\(\s*\)"),
        "supabaseClient.storage",
    ),
    RewriteRule("collection", re.compile(r"\.collection\s*\("), ".from("),
    RewriteRule("doc", None, _rewrite_doc),
    RewriteRule("where", None, _rewrite_where),
    RewriteRule("get", re.compile(r"\.get\s*\(\s*\)"), ""),
    RewriteRule("data", re.compile(r"\.data\s*\(\s*\)"), ""),
    RewriteRule("set", re.compile(r"\.set\s*\("), ".upsert("),
    RewriteRule("context_uid", re.compile(r"\bcontext\s*\.\s*auth\s*\??\.\s*uid\b"), "user.id"),
    RewriteRule("user_uid", re.compile(r"\buser\s*\??\.\s*uid\b"), "user.id"),
    RewriteRule("status_json", None, _rewrite_status_response("json")),
    RewriteRule("status_send", None, _rewrite_status_response("send")),
    RewriteRule("json", None, _rewrite_plain_response("json")),
    RewriteRule("send", None, _rewrite_plain_response("send")),
]


def needs_review(text: str) -> bool:
    """Check whether rewritten text carries a review marker."""
    return REVIEW_MARKER in (text or "")


class ApiRewriter:
    """
    Applies an ordered table of substitutions to a function body.

    Rewriting never raises: text no rule recognizes passes through
    unchanged, and leftover Firebase constructs are flagged with
    review-marker lines prefixed to the result.
    """

    def __init__(self, rules: Optional[List[RewriteRule]] = None):
        self.rules = list(rules if rules is not None else DEFAULT_RULES)

    def rewrite(self, body: str) -> str:
        """
        Rewrite a function body.

        Args:
            body: Original function body

        Returns:
            Rewritten body, prefixed with review markers where needed
        """
        converted = body or ""
        for rule in self.rules:
            converted = rule.apply(converted)

        reasons = self.residual_reasons(converted)
        if reasons:
            logger.debug(f"Body needs review: {', '.join(reasons)}")
            markers = "\n".join(f"{REVIEW_MARKER}: {reason}" for reason in reasons)
            converted = f"{markers}\n{converted}"
        return converted

    def residual_reasons(self, text: str) -> List[str]:
        """List the review reasons for constructs left in text."""
        return [reason for pattern, reason in RESIDUAL_PATTERNS if pattern.search(text)]
