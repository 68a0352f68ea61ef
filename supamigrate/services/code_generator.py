"""Generates Supabase Edge Functions from recognized Firebase functions."""

import re
import logging
from typing import Dict, List, Optional, Tuple

from ..models.function import FunctionRecord, GeneratedUnit, TriggerKind
from .api_rewriter import ApiRewriter, needs_review
from .body_extractor import indent_code
from . import templates

logger = logging.getLogger(__name__)


SUPABASE_IMPORT = "https://esm.sh/@supabase/supabase-js@2"
DEFAULT_FUNCTIONS_URL = "https://YOUR_PROJECT.supabase.co/functions/v1"
DEFAULT_CRON = "0 2 * * *"
DEFAULT_TABLE = "your_table"

# Column of the body slot inside every template
BODY_INDENT = 4

DEFAULT_TEMPLATES: Dict[TriggerKind, str] = {
    TriggerKind.HTTP: templates.HTTP_TEMPLATE,
    TriggerKind.CALLABLE: templates.CALLABLE_TEMPLATE,
    TriggerKind.DOCUMENT_CREATE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.DOCUMENT_UPDATE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.DOCUMENT_DELETE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.IDENTITY_CREATE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.IDENTITY_DELETE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.BLOB_FINALIZE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.BLOB_DELETE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.QUEUE_MESSAGE: templates.WEBHOOK_TEMPLATE,
    TriggerKind.TIME_SCHEDULE: templates.SCHEDULED_TEMPLATE,
}

DOCUMENT_OPERATIONS = {
    "onCreate": "INSERT",
    "onUpdate": "UPDATE",
    "onDelete": "DELETE",
    "onWrite": "INSERT OR UPDATE OR DELETE",
}

_CRON_FIELD = r"[\d*/,\-A-Za-z?LW#]+"
_CRON_PATTERN = re.compile(rf"^{_CRON_FIELD}(\s+{_CRON_FIELD}){{4}}$")
_EVERY_MINUTES = re.compile(r"^every\s+(\d+)\s+minutes?$", re.IGNORECASE)
_EVERY_HOURS = re.compile(r"^every\s+(\d+)\s+hours?$", re.IGNORECASE)
_EVERY_DAY_AT = re.compile(r"^every\s+day\s+(\d{1,2}):(\d{2})$", re.IGNORECASE)


def to_cron(schedule: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Convert a Firebase schedule phrase to a cron expression.

    Args:
        schedule: Schedule string from the source, e.g. "every 5 minutes"

    Returns:
        (cron expression, note) where note explains a fallback, else None
    """
    phrase = (schedule or "").strip()
    if not phrase:
        return DEFAULT_CRON, f"No schedule found; defaulted to '{DEFAULT_CRON}'"

    if _CRON_PATTERN.match(phrase):
        return phrase, None

    match = _EVERY_MINUTES.match(phrase)
    if match and 1 <= int(match.group(1)) <= 59:
        return f"*/{int(match.group(1))} * * * *", None

    match = _EVERY_HOURS.match(phrase)
    if match and 1 <= int(match.group(1)) <= 23:
        return f"0 */{int(match.group(1))} * * *", None

    match = _EVERY_DAY_AT.match(phrase)
    if match and int(match.group(1)) <= 23 and int(match.group(2)) <= 59:
        return f"{int(match.group(2))} {int(match.group(1))} * * *", None

    return DEFAULT_CRON, f"Could not convert schedule '{phrase}'; defaulted to '{DEFAULT_CRON}'"


def derive_table(document_path: Optional[str]) -> str:
    """
    Derive a table name from a document path.

    "users/{userId}/orders/{orderId}" becomes "orders": the last collection
    segment, which sits at an even position in the path.
    """
    if not document_path:
        return DEFAULT_TABLE
    segments = [s for s in document_path.strip("/").split("/") if s]
    collections = [s for i, s in enumerate(segments) if i % 2 == 0]
    for segment in reversed(collections):
        if not segment.startswith("{"):
            return re.sub(r"[^A-Za-z0-9_]", "_", segment)
    return DEFAULT_TABLE


class CodeGenerator:
    """
    Renders one Edge Function per FunctionRecord.

    Generation is entirely in memory. Template or rewrite errors propagate
    to the caller so a unit is either produced whole or not at all.
    """

    def __init__(
        self,
        rewriter: Optional[ApiRewriter] = None,
        functions_url: str = DEFAULT_FUNCTIONS_URL,
        template_map: Optional[Dict[TriggerKind, str]] = None
    ):
        """
        Initialize the generator.

        Args:
            rewriter: Body rewriter, defaults to the standard rule table
            functions_url: Base URL the companion SQL posts to
            template_map: Template per trigger kind; kinds missing here are unsupported
        """
        self.rewriter = rewriter or ApiRewriter()
        self.functions_url = functions_url.rstrip("/")
        self.template_map = dict(template_map if template_map is not None else DEFAULT_TEMPLATES)

    def supports(self, kind: TriggerKind) -> bool:
        return kind in self.template_map

    def generate(self, record: FunctionRecord) -> Optional[GeneratedUnit]:
        """
        Generate the Edge Function for a record.

        Args:
            record: Recognized Firebase function

        Returns:
            GeneratedUnit, or None when the trigger kind has no template
        """
        kind = record.trigger_kind
        template = self.template_map.get(kind)
        if template is None:
            logger.warning(f"No template for trigger kind {kind.value}; skipping {record.name}")
            return None

        body = self.rewriter.rewrite(record.body)
        review = needs_review(body)
        function_url = f"{self.functions_url}/{record.name}"

        notes = self._notes(record, function_url)
        code = templates.render(
            template,
            name=record.name,
            label=self._label(kind),
            origin=self._origin(record),
            schedule=record.schedule,
            imports=templates.IMPORTS,
            cors=templates.CORS if kind.is_http_shaped else "",
            client=templates.CLIENT,
            body=indent_code(body, BODY_INDENT),
            notes=templates.render(
                templates.NOTES,
                trigger_kind=kind.value,
                source_file=record.source_file,
                notes=notes,
                needs_review=review,
            ),
        )

        return GeneratedUnit(
            name=record.name,
            trigger_kind=kind,
            code=code,
            manifest=self.manifest(),
            companion_sql=self.companion_sql(record, function_url),
            needs_review=review,
        )

    def manifest(self) -> Dict[str, Dict[str, str]]:
        """Deno import map written next to every unit."""
        return {"imports": {"supabase": SUPABASE_IMPORT}}

    def companion_sql(self, record: FunctionRecord, function_url: Optional[str] = None) -> Optional[str]:
        """
        Build the trigger installation script for event-driven kinds.

        Returns:
            SQL text for document, identity and blob kinds, else None
        """
        kind = record.trigger_kind
        if kind.is_document:
            table = f"public.{derive_table(record.document_path)}"
            operations = DOCUMENT_OPERATIONS.get(record.document_event or "", self._kind_operation(kind))
        elif kind.is_identity:
            table = "auth.users"
            operations = self._kind_operation(kind)
        elif kind.is_blob:
            table = "storage.objects"
            operations = self._kind_operation(kind)
        else:
            return None

        return templates.render(
            templates.TRIGGER_SQL_TEMPLATE,
            name=record.name,
            table=table,
            operations=operations,
            function_url=function_url or f"{self.functions_url}/{record.name}",
        )

    def _kind_operation(self, kind: TriggerKind) -> str:
        if kind in (TriggerKind.DOCUMENT_CREATE, TriggerKind.IDENTITY_CREATE):
            return "INSERT"
        if kind in (TriggerKind.DOCUMENT_DELETE, TriggerKind.IDENTITY_DELETE, TriggerKind.BLOB_DELETE):
            return "DELETE"
        if kind == TriggerKind.BLOB_FINALIZE:
            return "INSERT OR UPDATE"
        return "UPDATE"

    def _label(self, kind: TriggerKind) -> str:
        if kind.is_document:
            return "Firestore"
        if kind.is_identity:
            return "Auth"
        if kind.is_blob:
            return "Storage"
        if kind == TriggerKind.QUEUE_MESSAGE:
            return "Pub/Sub"
        return kind.value

    def _origin(self, record: FunctionRecord) -> str:
        if record.document_path:
            return f"{record.document_path} ({record.document_event})"
        if record.identity_event:
            return f"auth.user().{record.identity_event}"
        if record.blob_event:
            return f"storage.object().{record.blob_event}"
        if record.topic:
            return f"pubsub.topic('{record.topic}')"
        return ""

    def _notes(self, record: FunctionRecord, function_url: str) -> List[str]:
        """Migration notes appended to the unit."""
        kind = record.trigger_kind
        notes = []
        if kind.is_http_shaped:
            notes.append("Test with representative request payloads")
        if kind.is_webhook_shaped:
            notes.append("Configure the SUPABASE_WEBHOOK_SECRET environment variable")
        if kind.is_document or kind.is_identity or kind.is_blob:
            notes.append("Install the database trigger in trigger.sql")
        if kind == TriggerKind.QUEUE_MESSAGE:
            notes.append(
                f"Publishers of topic '{record.topic}' must POST messages to {function_url}"
            )
        if kind == TriggerKind.TIME_SCHEDULE:
            cron, fallback = to_cron(record.schedule)
            notes.append("Configure the CRON_SECRET environment variable")
            if fallback:
                notes.append(fallback)
            notes.append(templates.render(
                templates.CRON_NOTE_TEMPLATE,
                name=record.name,
                cron=cron,
                function_url=function_url,
            ))
        if record.url:
            notes.append(f"Previously deployed at {record.url}")
        return notes
