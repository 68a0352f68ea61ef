"""Extractor that inventories functions deployed to a Firebase project."""

import re
import logging
import subprocess
from typing import Dict, List, Optional, Tuple
from datetime import datetime

from .base import BaseExtractor, ExtractionResult
from ..models.function import FunctionRecord, TriggerKind
from ..services.function_scanner import FunctionScanner

logger = logging.getLogger(__name__)


# Trigger keywords seen in `firebase functions:list` rows, checked in order
TRIGGER_KEYWORDS: List[Tuple[str, TriggerKind]] = [
    ("callable", TriggerKind.CALLABLE),
    ("firestore", TriggerKind.DOCUMENT_UPDATE),
    ("document", TriggerKind.DOCUMENT_UPDATE),
    ("auth", TriggerKind.IDENTITY_CREATE),
    ("user", TriggerKind.IDENTITY_CREATE),
    ("storage", TriggerKind.BLOB_FINALIZE),
    ("object", TriggerKind.BLOB_FINALIZE),
    ("schedule", TriggerKind.TIME_SCHEDULE),
    ("pubsub", TriggerKind.QUEUE_MESSAGE),
    ("topic", TriggerKind.QUEUE_MESSAGE),
    ("https", TriggerKind.HTTP),
    ("http", TriggerKind.HTTP),
]

_URL = re.compile(r"https://[^\s│|]+")
_NAME_BEFORE_URL = re.compile(r"(\w+)\s+.*https://")
_CELL_SPLIT = re.compile(r"\s*[│|]\s*")
_HEADER_WORDS = {"function", "name"}

DEFAULT_TIMEOUT = 120


def placeholder_body(name: str) -> str:
    """Body used when a deployed function's source cannot be retrieved."""
    return (
        "{\n"
        f"  // Source for {name} could not be retrieved from the Firebase project.\n"
        "  // Port the deployed implementation here.\n"
        "}"
    )


def classify_trigger(text: str) -> TriggerKind:
    """Map a row's trigger description to a trigger kind."""
    lowered = text.lower()
    for keyword, kind in TRIGGER_KEYWORDS:
        if keyword not in lowered:
            continue
        if kind.is_document:
            if "create" in lowered:
                return TriggerKind.DOCUMENT_CREATE
            if "delete" in lowered:
                return TriggerKind.DOCUMENT_DELETE
        elif kind.is_identity and "delete" in lowered:
            return TriggerKind.IDENTITY_DELETE
        elif kind.is_blob and "delete" in lowered:
            return TriggerKind.BLOB_DELETE
        return kind
    return TriggerKind.HTTP


def parse_function_list(output: str) -> List[Dict[str, Optional[str]]]:
    """
    Parse the table printed by `firebase functions:list`.

    Table rows are split into cells; the first cell is the function name and
    the remaining cells describe the trigger. Lines outside a table are only
    considered when they carry an https:// URL.

    Returns:
        List of {"name", "trigger", "url"} dictionaries in listing order
    """
    entries = []
    seen = set()
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        url_match = _URL.search(stripped)
        url = url_match.group(0) if url_match else None

        if "│" in stripped or "|" in stripped:
            cells = [c for c in _CELL_SPLIT.split(stripped.strip("│| ")) if c]
            if not cells or not re.fullmatch(r"[\w-]+", cells[0]):
                continue
            if cells[0].lower() in _HEADER_WORDS:
                continue
            name = cells[0]
            trigger = " ".join(cells[1:])
        elif url:
            found = _NAME_BEFORE_URL.search(stripped)
            if not found:
                continue
            name = found.group(1)
            trigger = "https"
        else:
            continue

        if name in seen:
            continue
        seen.add(name)
        entries.append({"name": name, "trigger": trigger, "url": url})
    return entries


class FirebaseProjectExtractor(BaseExtractor):
    """
    Extractor for a deployed Firebase project.

    Uses the firebase CLI to list deployed functions, then tries to fetch
    their source. When the source is unavailable each function still gets
    a record with a placeholder body so it can be scaffolded.
    """

    def __init__(
        self,
        project_id: str,
        firebase_cli: str = "firebase",
        scanner: Optional[FunctionScanner] = None,
        timeout: int = DEFAULT_TIMEOUT
    ):
        """
        Initialize the project extractor.

        Args:
            project_id: Firebase project id
            firebase_cli: Path or name of the firebase executable
            scanner: Scanner used on any retrieved source
            timeout: Seconds allowed per CLI invocation
        """
        super().__init__(scanner)
        self.project_id = project_id
        self.firebase_cli = firebase_cli
        self.timeout = timeout

    @property
    def source(self) -> str:
        return f"firebase:{self.project_id}"

    def extract(self) -> ExtractionResult:
        """List deployed functions and build records for them."""
        self.reset()
        started_at = datetime.utcnow()
        records: List[FunctionRecord] = []

        logger.info(f"Listing functions deployed to {self.project_id}")
        listing = self._run(["functions:list", "--project", self.project_id])
        if listing is None:
            self.add_warning(f"Could not list functions for project {self.project_id}")
        else:
            entries = parse_function_list(listing)
            logger.info(f"Found {len(entries)} deployed functions")
            for entry in entries:
                records.append(self._build_record(entry))

        result = self.get_extraction_result(records)
        result.started_at = started_at
        result.completed_at = datetime.utcnow()
        result.metadata["project_id"] = self.project_id
        return result

    def _build_record(self, entry: Dict[str, Optional[str]]) -> FunctionRecord:
        """Create a record for one listed function, fetching its source if possible."""
        name = entry["name"]
        kind = classify_trigger(entry.get("trigger") or "")

        record = self._fetch_source_record(name)
        if record is not None:
            record.url = entry.get("url")
            return record

        self.add_warning(f"Source for {name} unavailable; generating a placeholder")
        return FunctionRecord(
            name=name,
            trigger_kind=kind,
            body=placeholder_body(name),
            source_file=self.source,
            raw_match=entry.get("trigger") or "",
            rule="remote_inventory",
            url=entry.get("url"),
        )

    def _fetch_source_record(self, name: str) -> Optional[FunctionRecord]:
        """Try to download a function's source and recognize it."""
        output = self._run(["functions:code:get", name, "--project", self.project_id])
        if not output:
            return None
        for record in self.scanner.scan(output, f"{self.source}/{name}"):
            if record.name == name:
                return record
        return None

    def _run(self, args: List[str]) -> Optional[str]:
        """
        Run a firebase CLI command.

        Returns:
            Captured stdout, or None when the command is missing or fails
        """
        command = [self.firebase_cli] + args
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Command {' '.join(command)} failed: {e}")
            return None

        if completed.returncode != 0:
            logger.warning(
                f"Command {' '.join(command)} exited with {completed.returncode}: "
                f"{(completed.stderr or '').strip()}"
            )
            return None
        return completed.stdout
