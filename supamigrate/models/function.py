"""Function records recognized in source code and the units generated from them."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from enum import Enum


# Bodies at or below this length are treated as accidental matches
MIN_BODY_LENGTH = 10


class TriggerKind(str, Enum):
    """Category of event that invokes a function."""
    HTTP = "http"
    CALLABLE = "callable"
    DOCUMENT_CREATE = "document_create"
    DOCUMENT_UPDATE = "document_update"
    DOCUMENT_DELETE = "document_delete"
    IDENTITY_CREATE = "identity_create"
    IDENTITY_DELETE = "identity_delete"
    BLOB_FINALIZE = "blob_finalize"
    BLOB_DELETE = "blob_delete"
    QUEUE_MESSAGE = "queue_message"
    TIME_SCHEDULE = "time_schedule"

    @property
    def is_http_shaped(self) -> bool:
        """HTTP and callable functions answer user-facing requests."""
        return self in (TriggerKind.HTTP, TriggerKind.CALLABLE)

    @property
    def is_webhook_shaped(self) -> bool:
        """Event triggers realized as inbound calls carrying a shared secret."""
        return not self.is_http_shaped and self != TriggerKind.TIME_SCHEDULE

    @property
    def is_document(self) -> bool:
        return self in (
            TriggerKind.DOCUMENT_CREATE,
            TriggerKind.DOCUMENT_UPDATE,
            TriggerKind.DOCUMENT_DELETE,
        )

    @property
    def is_identity(self) -> bool:
        return self in (TriggerKind.IDENTITY_CREATE, TriggerKind.IDENTITY_DELETE)

    @property
    def is_blob(self) -> bool:
        return self in (TriggerKind.BLOB_FINALIZE, TriggerKind.BLOB_DELETE)


@dataclass
class FunctionRecord:
    """A function declaration recognized in a source file."""
    name: str
    trigger_kind: TriggerKind
    body: str
    source_file: str = ""
    raw_match: str = ""
    rule: str = ""

    # Trigger-specific metadata
    document_path: Optional[str] = None  # e.g. "users/{userId}"
    document_event: Optional[str] = None  # onCreate, onUpdate, onDelete, onWrite
    identity_event: Optional[str] = None
    blob_event: Optional[str] = None
    schedule: Optional[str] = None
    topic: Optional[str] = None
    url: Optional[str] = None  # Deployed URL (remote inventory only)

    # Offsets of the recognized declaration in its file
    span: Tuple[int, int] = field(default=(0, 0), repr=False, compare=False)

    @property
    def has_meaningful_body(self) -> bool:
        """Check the body is long enough to be a real function."""
        return bool(self.body) and len(self.body.strip()) > MIN_BODY_LENGTH

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "trigger_kind": self.trigger_kind.value,
            "source_file": self.source_file,
            "rule": self.rule,
            "document_path": self.document_path,
            "document_event": self.document_event,
            "identity_event": self.identity_event,
            "blob_event": self.blob_event,
            "schedule": self.schedule,
            "topic": self.topic,
            "url": self.url,
            "raw_match": self.raw_match,
            "body": self.body,
        }


@dataclass
class GeneratedUnit:
    """An Edge Function generated from one FunctionRecord."""
    name: str
    trigger_kind: TriggerKind
    code: str
    manifest: Dict[str, Any] = field(default_factory=dict)
    companion_sql: Optional[str] = None  # Trigger installation script
    needs_review: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "trigger_kind": self.trigger_kind.value,
            "code": self.code,
            "manifest": self.manifest,
            "companion_sql": self.companion_sql,
            "needs_review": self.needs_review,
        }


@dataclass
class FailureRecord:
    """A function whose generation or write failed."""
    name: str
    trigger_kind: TriggerKind
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "trigger_kind": self.trigger_kind.value,
            "error": self.error,
        }
