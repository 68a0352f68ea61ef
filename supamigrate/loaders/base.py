"""Base loader interface for exported relations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from .json_writer import read_relation

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Result of loading one relation."""
    table: str
    total_attempted: int = 0
    total_succeeded: int = 0
    total_failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def success_rate(self) -> float:
        if self.total_attempted == 0:
            return 0.0
        return self.total_succeeded / self.total_attempted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "total_attempted": self.total_attempted,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "success_rate": self.success_rate,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }


class BaseLoader(ABC):
    """
    Base class for relation loaders.

    Loaders push exported relation records into a target store in chunks.
    A failed chunk is recorded and loading continues with the next one.
    """

    def __init__(self, dry_run: bool = False, batch_size: int = 1000):
        """
        Initialize the loader.

        Args:
            dry_run: If True, count records without writing them
            batch_size: Number of records per chunk
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.dry_run = dry_run
        self.batch_size = batch_size

    @abstractmethod
    def load_chunk(self, table: str, records: List[Dict[str, Any]]) -> None:
        """
        Write one chunk of records.

        Raises:
            Exception: Any failure; the caller records it against the chunk
        """
        pass

    def load_relation(self, table: str, records: List[Dict[str, Any]]) -> LoadResult:
        """
        Load all records of one relation.

        Args:
            table: Target table name
            records: Records to insert

        Returns:
            LoadResult with chunk statistics
        """
        result = LoadResult(table=table)
        result.started_at = datetime.utcnow()

        for start in range(0, len(records), self.batch_size):
            chunk = records[start:start + self.batch_size]
            result.total_attempted += len(chunk)

            if self.dry_run:
                result.total_succeeded += len(chunk)
                continue

            try:
                self.load_chunk(table, chunk)
                result.total_succeeded += len(chunk)
            except Exception as e:
                result.total_failed += len(chunk)
                result.errors.append({
                    "offset": start,
                    "count": len(chunk),
                    "error": str(e),
                })
                logger.error(f"Failed to load {table} records {start}-{start + len(chunk)}: {e}")

        result.completed_at = datetime.utcnow()
        prefix = "[dry run] " if self.dry_run else ""
        logger.info(f"{prefix}Loaded {table}: {result.total_succeeded}/{result.total_attempted} succeeded")
        return result

    def load_directory(self, input_dir: str) -> Dict[str, LoadResult]:
        """
        Load every relation file in a directory.

        Args:
            input_dir: Directory of <relation>.json files

        Returns:
            Dictionary of table -> LoadResult
        """
        results = {}
        for path in sorted(Path(input_dir).glob("*.json")):
            table = path.stem
            try:
                records = read_relation(str(path))
            except (OSError, ValueError) as e:
                logger.error(f"Could not read {path}: {e}")
                failed = LoadResult(table=table)
                failed.errors.append({"offset": 0, "count": 0, "error": str(e)})
                results[table] = failed
                continue
            logger.info(f"Loading {len(records)} records into {table}")
            results[table] = self.load_relation(table, records)
        return results

    def validate_connection(self) -> bool:
        """Validate the connection to the target store."""
        return True
