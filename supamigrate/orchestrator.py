"""Migration orchestrator - coordinates function transpiling and data export runs."""

import os
import json
import shutil
import tempfile
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .models.function import FailureRecord, FunctionRecord, GeneratedUnit
from .models.migration import ExportConfig, LoadConfig, MigrationConfig, MigrationReport
from .models.record import ExportResult
from .services.function_scanner import FunctionScanner
from .services.code_generator import CodeGenerator
from .extractors.base import BaseExtractor
from .extractors.directory_extractor import DirectoryExtractor
from .extractors.firebase_project_extractor import FirebaseProjectExtractor
from .extractors.firestore_extractor import FirestoreExporter
from .extractors.firestore_client import create_firestore_client
from .extractors.hooks import load_hooks
from .loaders.base import LoadResult
from .loaders.json_writer import JSONRecordWriter
from .loaders.supabase_loader import SupabaseLoader

logger = logging.getLogger(__name__)


INDEX_FILENAME = "index.ts"
MANIFEST_FILENAME = "deno.json"
TRIGGER_FILENAME = "trigger.sql"


class FunctionMigrationOrchestrator:
    """
    Orchestrates a Firebase Functions to Edge Functions migration.

    Handles:
    - Source validation (local directory or deployed project)
    - Function recognition
    - Duplicate name resolution
    - Code generation and unit output
    - Report writing
    """

    def __init__(
        self,
        config: MigrationConfig,
        scanner: Optional[FunctionScanner] = None,
        generator: Optional[CodeGenerator] = None,
        extractor: Optional[BaseExtractor] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            scanner: Scanner shared by the extractors
            generator: Code generator for units
            extractor: Source override; built from config when omitted
            cancel_event: Set to stop between functions
        """
        self.config = config
        self.scanner = scanner or FunctionScanner()
        self.generator = generator or CodeGenerator()
        self.extractor = extractor
        self.cancel_event = cancel_event
        self.output_dir = Path(config.output_dir)

        # Runtime state
        self.report: Optional[MigrationReport] = None
        self.units: Dict[str, GeneratedUnit] = {}
        self.failures: List[FailureRecord] = []

    def run(self) -> MigrationReport:
        """
        Run the migration.

        Returns:
            MigrationReport; configuration problems mark it fatal rather
            than raising
        """
        self.report = MigrationReport(
            source=self.config.source,
            output_dir=str(self.output_dir),
        )
        self.report.started_at = datetime.utcnow()
        self.units = {}
        self.failures = []

        try:
            config_errors = self.config.validate() if self.extractor is None else []
            if config_errors:
                for message in config_errors:
                    self._log(message, "error")
                self.report.fatal = True
                return self.report

            logger.info("=== PHASE 1: RECOGNITION ===")
            records = self._collect_records()

            logger.info("=== PHASE 2: GENERATION ===")
            self._migrate(records)

            logger.info(
                f"=== MIGRATION COMPLETED: {self.report.migrated_count} migrated, "
                f"{self.report.failed_count} failed, {self.report.skipped_count} skipped ==="
            )
        finally:
            self.report.completed_at = datetime.utcnow()
            self._save_report()

        return self.report

    def _log(self, message: str, level: str = "info") -> None:
        """Log a message, mirroring warnings and errors into the report."""
        if level == "error":
            logger.error(message)
            self.report.errors.append(message)
        elif level == "warning":
            logger.warning(message)
            self.report.warnings.append(message)
        else:
            logger.info(message)

    def _create_extractor(self) -> BaseExtractor:
        if self.extractor is not None:
            return self.extractor
        if self.config.source_dir:
            return DirectoryExtractor(self.config.source_dir, self.scanner, self.cancel_event)
        return FirebaseProjectExtractor(
            self.config.firebase_project,
            firebase_cli=self.config.firebase_cli,
            scanner=self.scanner,
        )

    def _collect_records(self) -> List[FunctionRecord]:
        """Extract records and collapse duplicate names."""
        result = self._create_extractor().extract()
        for warning in result.warnings:
            self.report.warnings.append(warning)
        for error in result.errors:
            self.report.errors.append(error["message"])
        if result.cancelled:
            self.report.cancelled = True

        records = self._collapse_duplicates(result.records)
        self.report.total = len(records)
        self._log(f"Recognized {len(records)} functions in {result.source}")
        return records

    def _collapse_duplicates(self, records: List[FunctionRecord]) -> List[FunctionRecord]:
        """Keep the last record for each name, in first-seen order."""
        by_name: Dict[str, FunctionRecord] = {}
        for record in records:
            if record.name in by_name:
                previous = by_name[record.name]
                self._log(
                    f"Duplicate function name {record.name}: "
                    f"{record.source_file} replaces {previous.source_file}",
                    "warning",
                )
            by_name[record.name] = record
        return list(by_name.values())

    def _migrate(self, records: List[FunctionRecord]) -> None:
        """Generate and write each record, containing per-record failures."""
        for record in records:
            if self.cancel_event is not None and self.cancel_event.is_set():
                self._log("Migration cancelled", "warning")
                self.report.cancelled = True
                return

            kind = record.trigger_kind.value
            try:
                unit = self.generator.generate(record)
                if unit is None:
                    self._log(f"Unsupported trigger kind {kind} for {record.name}; skipped", "warning")
                    self.report.add_skipped(record.name)
                    continue

                unit_dir = self._write_unit(unit)
                self.units[unit.name] = unit
                self.report.add_migrated(record.name, kind, str(unit_dir), unit.needs_review)
                logger.info(f"Migrated {record.name} ({kind}) to {unit_dir}")
            except Exception as e:
                self._log(f"Failed to migrate {record.name}: {e}", "error")
                self.failures.append(FailureRecord(record.name, record.trigger_kind, str(e)))
                self.report.add_failed(record.name, kind, str(e))

    def _write_unit(self, unit: GeneratedUnit) -> Path:
        """
        Write a unit's files to <output>/<name>/.

        Files are staged in a hidden sibling directory that replaces the unit
        directory only once every file is written, so a failed write leaves
        no partial unit behind.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        unit_dir = self.output_dir / unit.name
        staging = Path(tempfile.mkdtemp(prefix=f".{unit.name}-", dir=self.output_dir))

        try:
            (staging / INDEX_FILENAME).write_text(unit.code, encoding="utf-8")
            (staging / MANIFEST_FILENAME).write_text(json.dumps(unit.manifest, indent=2) + "\n", encoding="utf-8")
            if unit.companion_sql:
                (staging / TRIGGER_FILENAME).write_text(unit.companion_sql, encoding="utf-8")

            if unit_dir.is_dir():
                shutil.rmtree(unit_dir)
            elif unit_dir.exists():
                unit_dir.unlink()
            os.replace(staging, unit_dir)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        return unit_dir

    def _save_report(self) -> None:
        """Save the migration report."""
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            filepath = self.output_dir / self.config.report_filename
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(self.report.to_dict(), f, indent=2, default=str)
        except OSError as e:
            logger.error(f"Could not save migration report: {e}")
            return
        self.report.report_path = str(filepath)
        logger.info(f"Saved migration report to {filepath}")


def run_export(
    config: ExportConfig,
    client=None,
    cancel_event: Optional[threading.Event] = None
) -> ExportResult:
    """
    Export a Firestore collection as configured.

    Args:
        config: Export configuration
        client: Firestore client; created from the configured credentials when omitted
        cancel_event: Set to stop between batches

    Returns:
        ExportResult of the run

    Raises:
        ValueError: If the configuration is invalid
    """
    errors = config.validate()
    if errors:
        raise ValueError("; ".join(errors))

    if client is None:
        client = create_firestore_client(config.credentials_path, config.project_id)

    exporter = FirestoreExporter(
        client,
        JSONRecordWriter(config.output_dir),
        hooks=load_hooks(config.hooks_dir),
        cancel_event=cancel_event,
    )
    result = exporter.export(
        config.collection,
        batch_size=config.batch_size,
        limit=config.limit,
        include_subcollections=config.include_subcollections,
        max_depth=config.max_depth,
        subcollection_limit=config.subcollection_limit,
        subcollection_mode=config.subcollection_mode.value,
    )
    return result


def run_load(config: LoadConfig, loader: Optional[SupabaseLoader] = None) -> Dict[str, LoadResult]:
    """
    Load every exported relation in a directory into Supabase.

    Raises:
        ValueError: If the configuration is invalid
    """
    errors = config.validate()
    if errors:
        raise ValueError("; ".join(errors))

    loader = loader or SupabaseLoader(
        config.supabase_url or "",
        config.service_role_key or "",
        dry_run=config.dry_run,
        batch_size=config.batch_size,
        upsert=config.upsert,
        on_conflict=config.on_conflict,
    )
    return loader.load_directory(config.input_dir)
