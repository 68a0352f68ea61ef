"""Registry of recognition rules for Firebase function declarations."""

import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern

from ..models.function import TriggerKind

logger = logging.getLogger(__name__)


# Authoring styles, ordered by specificity
STYLE_DIRECT = "direct"
STYLE_FACTORY = "factory"
STYLE_EXPORTED_FACTORY = "exported_factory"

SPECIFICITY = {
    STYLE_DIRECT: 1,
    STYLE_FACTORY: 2,
    STYLE_EXPORTED_FACTORY: 3,
}

# Body-location strategies
BODY_INLINE = "inline"
BODY_HANDLER = "handler"

# Trigger families
FAMILY_HTTP = "http"
FAMILY_CALLABLE = "callable"
FAMILY_DOCUMENT = "document"
FAMILY_IDENTITY = "identity"
FAMILY_BLOB = "blob"
FAMILY_QUEUE = "queue"
FAMILY_SCHEDULE = "schedule"

_Q = r"['\"`]"
_STR = r"[^'\"`]+"

# `exports.name = ` or `export const name = `
_BINDING = r"(?:\bexports\.|\bexport\s+(?:const|let|var)\s+)(?P<name>\w+)\s*=\s*"

# `functions.` optionally chained through region()/runWith() options
_V1 = r"\bfunctions(?:\s*\.\s*(?:region|runWith)\s*\([^)]*\))*\s*\.\s*"

# Event-name normalization for document triggers
DOCUMENT_EVENTS = {
    "onCreate": "onCreate",
    "Created": "onCreate",
    "onUpdate": "onUpdate",
    "Updated": "onUpdate",
    "onDelete": "onDelete",
    "Deleted": "onDelete",
    "onWrite": "onWrite",
    "Written": "onWrite",
}

BLOB_EVENTS = {
    "onFinalize": "onFinalize",
    "Finalized": "onFinalize",
    "onArchive": "onFinalize",
    "Archived": "onFinalize",
    "onMetadataUpdate": "onFinalize",
    "MetadataUpdated": "onFinalize",
    "onDelete": "onDelete",
    "Deleted": "onDelete",
}


@dataclass
class RecognitionRule:
    """One way of declaring a Firebase function in source text."""
    name: str
    pattern: Pattern
    family: str
    style: str = STYLE_DIRECT

    @property
    def specificity(self) -> int:
        return SPECIFICITY[self.style]

    @property
    def body_strategy(self) -> str:
        if self.style == STYLE_DIRECT:
            return BODY_INLINE
        return BODY_HANDLER

    def resolve(self, match) -> Dict[str, Optional[str]]:
        """
        Derive trigger kind and metadata from a match.

        Args:
            match: A match object produced by this rule's pattern

        Returns:
            Dictionary with trigger_kind and the trigger-specific fields
        """
        groups = match.groupdict()
        event = groups.get("event")
        info: Dict[str, Optional[str]] = {
            "name": groups.get("name"),
            "document_path": groups.get("path"),
            "schedule": groups.get("schedule"),
            "topic": groups.get("topic"),
            "document_event": None,
            "identity_event": None,
            "blob_event": None,
        }

        if self.family == FAMILY_HTTP:
            info["trigger_kind"] = TriggerKind.HTTP
        elif self.family == FAMILY_CALLABLE:
            info["trigger_kind"] = TriggerKind.CALLABLE
        elif self.family == FAMILY_DOCUMENT:
            document_event = DOCUMENT_EVENTS.get(event or "", "onWrite")
            info["document_event"] = document_event
            info["trigger_kind"] = {
                "onCreate": TriggerKind.DOCUMENT_CREATE,
                "onDelete": TriggerKind.DOCUMENT_DELETE,
            }.get(document_event, TriggerKind.DOCUMENT_UPDATE)
        elif self.family == FAMILY_IDENTITY:
            info["identity_event"] = event or "onCreate"
            if event == "onDelete":
                info["trigger_kind"] = TriggerKind.IDENTITY_DELETE
            else:
                info["trigger_kind"] = TriggerKind.IDENTITY_CREATE
        elif self.family == FAMILY_BLOB:
            blob_event = BLOB_EVENTS.get(event or "", "onFinalize")
            info["blob_event"] = blob_event
            if blob_event == "onDelete":
                info["trigger_kind"] = TriggerKind.BLOB_DELETE
            else:
                info["trigger_kind"] = TriggerKind.BLOB_FINALIZE
        elif self.family == FAMILY_QUEUE:
            info["trigger_kind"] = TriggerKind.QUEUE_MESSAGE
        elif self.family == FAMILY_SCHEDULE:
            info["trigger_kind"] = TriggerKind.TIME_SCHEDULE
        else:
            raise ValueError(f"Unknown trigger family: {self.family}")

        return info


def _rule(name: str, pattern: str, family: str, style: str = STYLE_DIRECT) -> RecognitionRule:
    return RecognitionRule(name=name, pattern=re.compile(pattern), family=family, style=style)


DEFAULT_RULES: List[RecognitionRule] = [
    # First-generation direct calls, CommonJS or ES module bindings
    _rule("http_direct", rf"{_BINDING}{_V1}https\s*\.\s*onRequest\s*\(", FAMILY_HTTP),
    _rule("callable_direct", rf"{_BINDING}{_V1}https\s*\.\s*onCall\s*\(", FAMILY_CALLABLE),
    _rule(
        "document_direct",
        rf"{_BINDING}{_V1}firestore\s*\.\s*document\s*\(\s*{_Q}(?P<path>{_STR}){_Q}\s*\)"
        rf"\s*\.\s*(?P<event>onCreate|onUpdate|onDelete|onWrite)\s*\(",
        FAMILY_DOCUMENT,
    ),
    _rule(
        "identity_direct",
        rf"{_BINDING}{_V1}auth\s*\.\s*user\s*\(\s*\)\s*\.\s*(?P<event>onCreate|onDelete)\s*\(",
        FAMILY_IDENTITY,
    ),
    _rule(
        "blob_direct",
        rf"{_BINDING}{_V1}storage\s*\.\s*(?:bucket\s*\([^)]*\)\s*\.\s*)?object\s*\(\s*\)"
        rf"\s*\.\s*(?P<event>onFinalize|onDelete|onArchive|onMetadataUpdate)\s*\(",
        FAMILY_BLOB,
    ),
    _rule(
        "queue_direct",
        rf"{_BINDING}{_V1}pubsub\s*\.\s*topic\s*\(\s*{_Q}(?P<topic>{_STR}){_Q}\s*\)\s*\.\s*onPublish\s*\(",
        FAMILY_QUEUE,
    ),
    _rule(
        "schedule_direct",
        rf"{_BINDING}{_V1}pubsub\s*\.\s*schedule\s*\(\s*{_Q}(?P<schedule>{_STR}){_Q}\s*\)"
        rf"(?:\s*\.\s*timeZone\s*\([^)]*\))?\s*\.\s*onRun\s*\(",
        FAMILY_SCHEDULE,
    ),

    # Second-generation direct calls
    _rule("http_v2", rf"{_BINDING}(?:https\s*\.\s*)?onRequest\s*\(", FAMILY_HTTP),
    _rule("callable_v2", rf"{_BINDING}(?:https\s*\.\s*)?onCall\s*\(", FAMILY_CALLABLE),
    _rule(
        "document_v2",
        rf"{_BINDING}onDocument(?P<event>Created|Updated|Deleted|Written)\s*\(\s*"
        rf"(?:\{{\s*document\s*:\s*)?{_Q}(?P<path>{_STR}){_Q}",
        FAMILY_DOCUMENT,
    ),
    _rule(
        "blob_v2",
        rf"{_BINDING}onObject(?P<event>Finalized|Deleted|Archived|MetadataUpdated)\s*\(",
        FAMILY_BLOB,
    ),
    _rule(
        "queue_v2",
        rf"{_BINDING}onMessagePublished\s*\(\s*(?:\{{\s*topic\s*:\s*)?{_Q}(?P<topic>{_STR}){_Q}",
        FAMILY_QUEUE,
    ),
    _rule(
        "schedule_v2",
        rf"{_BINDING}onSchedule\s*\(\s*(?:\{{\s*schedule\s*:\s*)?{_Q}(?P<schedule>{_STR}){_Q}",
        FAMILY_SCHEDULE,
    ),

    # Helper factories: createXFunction('name', ...)
    _rule(
        "http_factory",
        rf"\bcreateHttpFunction\s*\(\s*{_Q}(?P<name>\w+){_Q}",
        FAMILY_HTTP,
        STYLE_FACTORY,
    ),
    _rule(
        "callable_factory",
        rf"\bcreateCallableFunction\s*\(\s*{_Q}(?P<name>\w+){_Q}",
        FAMILY_CALLABLE,
        STYLE_FACTORY,
    ),
    _rule(
        "document_factory",
        rf"\bcreateFirestoreFunction\s*\(\s*{_Q}(?P<name>\w+){_Q}"
        rf"(?:\s*,\s*{_Q}(?P<path>{_STR}){_Q})?(?:\s*,\s*{_Q}(?P<event>on\w+){_Q})?",
        FAMILY_DOCUMENT,
        STYLE_FACTORY,
    ),
    _rule(
        "schedule_factory",
        rf"\bcreateScheduledFunction\s*\(\s*{_Q}(?P<name>\w+){_Q}"
        rf"(?:\s*,\s*{_Q}(?P<schedule>{_STR}){_Q})?",
        FAMILY_SCHEDULE,
        STYLE_FACTORY,
    ),

    # Exported helper factories: export const name = createXFunction(...)
    _rule(
        "http_exported_factory",
        rf"{_BINDING}createHttpFunction\s*\(",
        FAMILY_HTTP,
        STYLE_EXPORTED_FACTORY,
    ),
    _rule(
        "callable_exported_factory",
        rf"{_BINDING}createCallableFunction\s*\(",
        FAMILY_CALLABLE,
        STYLE_EXPORTED_FACTORY,
    ),
    _rule(
        "document_exported_factory",
        rf"{_BINDING}createFirestoreFunction\s*\(\s*(?:{_Q}\w+{_Q}\s*,\s*)?"
        rf"(?:{_Q}(?P<path>{_STR}){_Q})?(?:\s*,\s*{_Q}(?P<event>on\w+){_Q})?",
        FAMILY_DOCUMENT,
        STYLE_EXPORTED_FACTORY,
    ),
    _rule(
        "schedule_exported_factory",
        rf"{_BINDING}createScheduledFunction\s*\(\s*(?:{_Q}\w+{_Q}\s*,\s*)?"
        rf"(?:{_Q}(?P<schedule>{_STR}){_Q})?",
        FAMILY_SCHEDULE,
        STYLE_EXPORTED_FACTORY,
    ),
]


class PatternRegistry:
    """
    Ordered collection of recognition rules.

    Registry order breaks ties between overlapping matches of equal
    specificity, so rules registered earlier win.
    """

    def __init__(self, rules: Optional[List[RecognitionRule]] = None):
        self._rules: List[RecognitionRule] = list(rules if rules is not None else DEFAULT_RULES)

    @property
    def rules(self) -> List[RecognitionRule]:
        return list(self._rules)

    def register(self, rule: RecognitionRule) -> None:
        """Append a rule; names must be unique."""
        if any(r.name == rule.name for r in self._rules):
            raise ValueError(f"Recognition rule already registered: {rule.name}")
        self._rules.append(rule)
        logger.debug(f"Registered recognition rule {rule.name}")

    def get(self, name: str) -> Optional[RecognitionRule]:
        for rule in self._rules:
            if rule.name == name:
                return rule
        return None

    def index_of(self, rule: RecognitionRule) -> int:
        return self._rules.index(rule)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)
