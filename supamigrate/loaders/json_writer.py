"""Streaming JSON-array writer for exported relations."""

import re
import json
import base64
import decimal
import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from google.cloud.firestore import DocumentReference, GeoPoint

logger = logging.getLogger(__name__)


def sanitize_relation_name(name: str) -> str:
    """Replace every character that is not a letter or digit with an underscore."""
    return re.sub(r"[^A-Za-z0-9]", "_", name)


def json_default(value: Any) -> Any:
    """Serialize Firestore and other non-JSON values."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, DocumentReference):
        return value.path
    if isinstance(value, GeoPoint):
        return {"latitude": value.latitude, "longitude": value.longitude}
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, decimal.Decimal):
        return float(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


def read_relation(path: str) -> List[Dict[str, Any]]:
    """
    Load the records of a relation file.

    A file from an interrupted export lacks its closing bracket; it is
    completed before parsing.

    Args:
        path: Path to a relation file

    Returns:
        List of records
    """
    text = Path(path).read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("[") and not text.endswith("]"):
        text = text.rstrip(",\n ") + "\n]"
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError(f"Relation file {path} does not hold a JSON array")
    return data


class JSONRecordWriter:
    """
    Appends records to one JSON array file per relation.

    The first record written to a relation during a run replaces any file
    left by a previous run. Each write opens and closes the file, so an
    interrupted export leaves readable output behind. finalize() closes
    every array that was opened and empties the files of relations that
    received nothing this run.
    """

    def __init__(self, output_dir: str, indent: Optional[int] = 2):
        """
        Initialize the writer.

        Args:
            output_dir: Directory receiving <relation>.json files
            indent: JSON indentation for each record
        """
        self.output_dir = Path(output_dir)
        self.indent = indent
        self._counts: Dict[str, int] = {}
        self._finalized = False

    def path_for(self, relation: str) -> Path:
        return self.output_dir / f"{relation}.json"

    @property
    def counts(self) -> Dict[str, int]:
        """Records written per relation."""
        return dict(self._counts)

    def write_record(self, relation: str, record: Dict[str, Any]) -> None:
        """
        Append one record to a relation.

        Args:
            relation: Relation name (used as the file name)
            record: JSON-compatible record
        """
        if self._finalized:
            raise RuntimeError("Writer already finalized")

        serialized = json.dumps(record, default=json_default, indent=self.indent, ensure_ascii=False)
        path = self.path_for(relation)

        if relation not in self._counts:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write("[\n" + serialized)
            self._counts[relation] = 1
            logger.debug(f"Started relation file {path}")
            return

        with open(path, "a", encoding="utf-8") as f:
            f.write(",\n" + serialized)
        self._counts[relation] += 1

    def reset(self) -> None:
        """Start a new run: the next record of each relation replaces its file again."""
        self._counts = {}
        self._finalized = False

    def finalize(self, relations: Iterable[str] = ()) -> Dict[str, int]:
        """
        Close every opened array.

        Args:
            relations: Relations of the run; each one that received no
                records gets an empty array, replacing any earlier file

        Returns:
            Record count per relation
        """
        if self._finalized:
            return self.counts
        for relation in self._counts:
            with open(self.path_for(relation), "a", encoding="utf-8") as f:
                f.write("\n]\n")
        empty = [relation for relation in relations if relation not in self._counts]
        if empty:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        for relation in empty:
            with open(self.path_for(relation), "w", encoding="utf-8") as f:
                f.write("[]\n")
            logger.info(f"Wrote 0 records to {self.path_for(relation)}")
        self._finalized = True
        for relation, count in self._counts.items():
            logger.info(f"Wrote {count} records to {self.path_for(relation)}")
        return self.counts
