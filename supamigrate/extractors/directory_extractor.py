"""Extractor that scans a local Firebase functions source tree."""

import os
import logging
import threading
from pathlib import Path
from typing import Iterator, List, Optional
from datetime import datetime

from .base import BaseExtractor, ExtractionResult
from ..models.function import FunctionRecord
from ..services.function_scanner import FunctionScanner

logger = logging.getLogger(__name__)


SKIP_DIRECTORIES = frozenset({
    "node_modules",
    ".git",
    "dist",
    "build",
    "lib",
    "coverage",
    ".firebase",
    ".idea",
    ".vscode",
})

SOURCE_EXTENSIONS = (".js", ".ts", ".mjs", ".cjs")

EXCLUDED_SUFFIXES = (".d.ts", ".min.js")

EXCLUDED_FILES = frozenset({"package.json", "package-lock.json", "tsconfig.json"})


def is_source_file(filename: str) -> bool:
    """Check whether a file name looks like function source."""
    if filename in EXCLUDED_FILES:
        return False
    if filename.endswith(EXCLUDED_SUFFIXES):
        return False
    return filename.endswith(SOURCE_EXTENSIONS)


class DirectoryExtractor(BaseExtractor):
    """
    Extractor for a functions source directory.

    Walks the tree in sorted order, skipping build output and dependency
    folders, and scans every JavaScript or TypeScript source file.
    A file that cannot be read is reported as a warning and contributes
    no records.
    """

    def __init__(
        self,
        source_dir: str,
        scanner: Optional[FunctionScanner] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Initialize the directory extractor.

        Args:
            source_dir: Root of the Firebase functions source
            scanner: Scanner used to recognize declarations
            cancel_event: Set to stop between files
        """
        super().__init__(scanner)
        self.source_dir = source_dir
        self.cancel_event = cancel_event

    @property
    def source(self) -> str:
        return self.source_dir

    def iter_source_files(self) -> Iterator[Path]:
        """Yield source files under the root in a stable order."""
        for root, dirs, files in os.walk(self.source_dir):
            dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRECTORIES)
            for filename in sorted(files):
                if is_source_file(filename):
                    yield Path(root) / filename

    def extract(self) -> ExtractionResult:
        """Scan every source file under the directory."""
        self.reset()
        started_at = datetime.utcnow()
        records: List[FunctionRecord] = []
        files_scanned = 0
        cancelled = False

        logger.info(f"Scanning {self.source_dir} for Firebase functions")

        for file_path in self.iter_source_files():
            if self.cancel_event is not None and self.cancel_event.is_set():
                logger.warning("Scan cancelled")
                cancelled = True
                break

            files_scanned += 1
            try:
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self.add_warning(f"Could not read {file_path}: {e}")
                continue

            found = self.scanner.scan(content, str(file_path))
            if found:
                logger.info(f"Found {len(found)} functions in {file_path}")
            records.extend(found)

        result = self.get_extraction_result(records)
        result.files_scanned = files_scanned
        result.cancelled = cancelled
        result.started_at = started_at
        result.completed_at = datetime.utcnow()

        logger.info(f"Extracted {len(records)} functions from {files_scanned} file(s)")
        return result
