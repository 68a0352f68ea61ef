"""Function migration execution and report endpoints."""

import logging
from fastapi import APIRouter, HTTPException

from ...models.migration import MigrationConfig
from ...orchestrator import FunctionMigrationOrchestrator
from ..models import MigrationCreate, MigrationResponse, MigrationListResponse
from ..storage import migration_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=MigrationResponse)
def run_migration(data: MigrationCreate):
    """Run a function migration and return its report."""
    config = MigrationConfig.from_dict(data.model_dump())
    report = FunctionMigrationOrchestrator(config).run()
    logger.info(f"Migration {report.id} finished: {report.migrated_count}/{report.total} migrated")
    return migration_storage.save(MigrationResponse(**report.to_dict()))


@router.get("", response_model=MigrationListResponse)
def list_migrations():
    """List all migration reports."""
    migrations = migration_storage.list_all()
    return MigrationListResponse(migrations=migrations, total=len(migrations))


@router.get("/{migration_id}", response_model=MigrationResponse)
def get_migration(migration_id: str):
    """Get a specific migration report."""
    migration = migration_storage.get(migration_id)
    if not migration:
        raise HTTPException(status_code=404, detail="Migration not found")
    return migration
