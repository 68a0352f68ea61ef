"""Migration configuration and run report models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import os
import uuid


class UnitStatus(str, Enum):
    """Outcome of processing one function."""
    MIGRATED = "migrated"
    FAILED = "failed"


@dataclass
class UnitSummary:
    """Per-function line of a migration report."""
    name: str
    trigger_kind: str
    status: UnitStatus
    output_path: Optional[str] = None
    error_message: Optional[str] = None
    needs_review: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = {
            "name": self.name,
            "trigger_kind": self.trigger_kind,
            "status": self.status.value,
            "needs_review": self.needs_review,
        }
        if self.status == UnitStatus.MIGRATED:
            data["output_path"] = self.output_path
        else:
            data["error_message"] = self.error_message
        return data


@dataclass
class MigrationReport:
    """Aggregate outcome of one function migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source: str = ""
    output_dir: str = ""

    total: int = 0
    migrated_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0

    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    units: List[UnitSummary] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    # Set when configuration aborted the run before any processing
    fatal: bool = False
    cancelled: bool = False

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    report_path: Optional[str] = None

    def add_migrated(self, name: str, trigger_kind: str, output_path: str, needs_review: bool = False) -> None:
        """Record a successfully written unit."""
        self.migrated_count += 1
        self.units.append(UnitSummary(
            name=name,
            trigger_kind=trigger_kind,
            status=UnitStatus.MIGRATED,
            output_path=output_path,
            needs_review=needs_review,
        ))

    def add_failed(self, name: str, trigger_kind: str, error_message: str) -> None:
        """Record a unit whose generation or write failed."""
        self.failed_count += 1
        self.units.append(UnitSummary(
            name=name,
            trigger_kind=trigger_kind,
            status=UnitStatus.FAILED,
            error_message=error_message,
        ))

    def add_skipped(self, name: str) -> None:
        """Record a function with no generator template."""
        self.skipped_count += 1
        self.skipped.append(name)

    @property
    def succeeded(self) -> bool:
        """True when the run was configured correctly and nothing failed."""
        return not self.fatal and self.failed_count == 0

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "source": self.source,
            "output_dir": self.output_dir,
            "total": self.total,
            "migrated_count": self.migrated_count,
            "failed_count": self.failed_count,
            "skipped_count": self.skipped_count,
            "warnings": self.warnings,
            "errors": self.errors,
            "units": [u.to_dict() for u in self.units],
            "skipped": self.skipped,
            "fatal": self.fatal,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "report_path": self.report_path,
        }


@dataclass
class MigrationConfig:
    """Configuration for a function migration."""
    source_dir: Optional[str] = None
    firebase_project: Optional[str] = None
    output_dir: str = "./supabase/functions"
    report_filename: str = "migration_report.json"
    firebase_cli: str = "firebase"

    @property
    def source(self) -> str:
        """Describe where functions are read from."""
        if self.source_dir:
            return self.source_dir
        if self.firebase_project:
            return f"firebase:{self.firebase_project}"
        return ""

    def validate(self) -> List[str]:
        """
        Validate the source selection.

        Returns:
            List of configuration error messages
        """
        errors = []
        if not self.source_dir and not self.firebase_project:
            errors.append("Either a source directory or a Firebase project must be specified")
        elif self.source_dir and self.firebase_project:
            errors.append("Specify only one of a source directory or a Firebase project")
        elif self.source_dir and not os.path.isdir(self.source_dir):
            errors.append(f"Source directory not found: {self.source_dir}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_dir": self.source_dir,
            "firebase_project": self.firebase_project,
            "output_dir": self.output_dir,
            "report_filename": self.report_filename,
            "firebase_cli": self.firebase_cli,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            source_dir=data.get("source_dir"),
            firebase_project=data.get("firebase_project"),
            output_dir=data.get("output_dir", "./supabase/functions"),
            report_filename=data.get("report_filename", "migration_report.json"),
            firebase_cli=data.get("firebase_cli", "firebase"),
        )


class SubcollectionMode(str, Enum):
    """How nested subcollections are written during an export."""
    FLATTEN = "flatten"  # One relation per nesting chain
    NEST = "nest"  # Attached to the parent record under "subcollections"


@dataclass
class ExportConfig:
    """Configuration for a Firestore export."""
    collection: str
    batch_size: int = 1000
    limit: int = 0  # 0 means no limit
    include_subcollections: bool = False
    max_depth: int = 3
    subcollection_limit: int = 100
    subcollection_mode: SubcollectionMode = SubcollectionMode.FLATTEN
    output_dir: str = "./firestore-export"
    credentials_path: Optional[str] = field(
        default_factory=lambda: os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        or os.environ.get("FIREBASE_CREDENTIALS_PATH")
    )
    project_id: Optional[str] = field(default_factory=lambda: os.environ.get("FIREBASE_PROJECT_ID"))
    hooks_dir: Optional[str] = None

    def validate(self) -> List[str]:
        """
        Validate export bounds.

        Returns:
            List of configuration error messages
        """
        errors = []
        if not self.collection:
            errors.append("Collection name is required")
        if self.batch_size <= 0:
            errors.append("Batch size must be positive")
        if self.limit < 0:
            errors.append("Limit must not be negative")
        if self.max_depth < 0:
            errors.append("Max depth must not be negative")
        if self.subcollection_limit <= 0:
            errors.append("Subcollection limit must be positive")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "collection": self.collection,
            "batch_size": self.batch_size,
            "limit": self.limit,
            "include_subcollections": self.include_subcollections,
            "max_depth": self.max_depth,
            "subcollection_limit": self.subcollection_limit,
            "subcollection_mode": self.subcollection_mode.value,
            "output_dir": self.output_dir,
            "project_id": self.project_id,
            "hooks_dir": self.hooks_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportConfig":
        """Create from dictionary representation."""
        config = cls(
            collection=data.get("collection", ""),
            batch_size=int(data.get("batch_size", 1000)),
            limit=int(data.get("limit", 0)),
            include_subcollections=bool(data.get("include_subcollections", False)),
            max_depth=int(data.get("max_depth", 3)),
            subcollection_limit=int(data.get("subcollection_limit", 100)),
            subcollection_mode=SubcollectionMode(data.get("subcollection_mode", "flatten")),
            output_dir=data.get("output_dir", "./firestore-export"),
            hooks_dir=data.get("hooks_dir"),
        )
        if data.get("credentials_path"):
            config.credentials_path = data["credentials_path"]
        if data.get("project_id"):
            config.project_id = data["project_id"]
        return config


@dataclass
class LoadConfig:
    """Configuration for loading exported relations into Supabase."""
    input_dir: str = "./firestore-export"
    supabase_url: Optional[str] = field(default_factory=lambda: os.environ.get("SUPABASE_URL"))
    service_role_key: Optional[str] = field(
        default_factory=lambda: os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    )
    batch_size: int = 1000
    dry_run: bool = False
    upsert: bool = True
    on_conflict: str = "firestore_id"

    def validate(self) -> List[str]:
        """
        Validate connection settings.

        Returns:
            List of configuration error messages
        """
        errors = []
        if not os.path.isdir(self.input_dir):
            errors.append(f"Input directory not found: {self.input_dir}")
        if not self.dry_run:
            if not self.supabase_url:
                errors.append("SUPABASE_URL is required")
            if not self.service_role_key:
                errors.append("SUPABASE_SERVICE_ROLE_KEY is required")
        return errors

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoadConfig":
        """Create from dictionary representation."""
        config = cls(
            input_dir=data.get("input_dir", "./firestore-export"),
            batch_size=int(data.get("batch_size", 1000)),
            dry_run=bool(data.get("dry_run", False)),
            upsert=bool(data.get("upsert", True)),
            on_conflict=data.get("on_conflict", "firestore_id"),
        )
        if data.get("supabase_url"):
            config.supabase_url = data["supabase_url"]
        if data.get("service_role_key"):
            config.service_role_key = data["service_role_key"]
        return config
