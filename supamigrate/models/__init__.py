"""Data models for the migration toolkit."""

from .function import (
    MIN_BODY_LENGTH,
    TriggerKind,
    FunctionRecord,
    GeneratedUnit,
    FailureRecord,
)
from .migration import (
    MigrationConfig,
    MigrationReport,
    UnitSummary,
    UnitStatus,
    ExportConfig,
    LoadConfig,
    SubcollectionMode,
)
from .record import (
    IDENTITY_FIELDS,
    ExportedRelation,
    ExportResult,
    assign_identity,
)

__all__ = [
    "MIN_BODY_LENGTH",
    "TriggerKind",
    "FunctionRecord",
    "GeneratedUnit",
    "FailureRecord",
    "MigrationConfig",
    "MigrationReport",
    "UnitSummary",
    "UnitStatus",
    "ExportConfig",
    "LoadConfig",
    "SubcollectionMode",
    "IDENTITY_FIELDS",
    "ExportedRelation",
    "ExportResult",
    "assign_identity",
]
