"""Base extractor interface for function sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from ..models.function import FunctionRecord
from ..services.function_scanner import FunctionScanner

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Result of collecting functions from a source."""
    source: str
    records: List[FunctionRecord] = field(default_factory=list)
    files_scanned: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    cancelled: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def success(self) -> bool:
        """Check if extraction was successful."""
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source": self.source,
            "total_extracted": len(self.records),
            "files_scanned": self.files_scanned,
            "errors": self.errors,
            "warnings": self.warnings,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "metadata": self.metadata,
        }


class BaseExtractor(ABC):
    """
    Base class for function sources.

    Extractors locate Firebase function source text (a local directory or
    a deployed project) and turn it into FunctionRecord objects through a
    FunctionScanner.
    """

    def __init__(self, scanner: Optional[FunctionScanner] = None):
        """
        Initialize the extractor.

        Args:
            scanner: Scanner used to recognize declarations
        """
        self.scanner = scanner or FunctionScanner()
        self._errors: List[Dict[str, Any]] = []
        self._warnings: List[str] = []

    @property
    @abstractmethod
    def source(self) -> str:
        """Human-readable description of the source."""
        pass

    @abstractmethod
    def extract(self) -> ExtractionResult:
        """
        Collect every function from the source.

        Returns:
            ExtractionResult containing the recognized records
        """
        pass

    def add_error(self, message: str, path: Optional[str] = None) -> None:
        """Add an error to the extraction."""
        self._errors.append({
            "message": message,
            "path": path,
            "timestamp": datetime.utcnow().isoformat(),
        })
        logger.error(f"Extraction error: {message}")

    def add_warning(self, message: str) -> None:
        """Add a warning to the extraction."""
        self._warnings.append(message)
        logger.warning(f"Extraction warning: {message}")

    def get_extraction_result(self, records: List[FunctionRecord]) -> ExtractionResult:
        """Create an ExtractionResult from recognized records."""
        return ExtractionResult(
            source=self.source,
            records=records,
            errors=self._errors.copy(),
            warnings=self._warnings.copy(),
        )

    def reset(self) -> None:
        """Reset the extractor state."""
        self._errors = []
        self._warnings = []
