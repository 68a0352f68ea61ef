"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime


class UnitStatusEnum(str, Enum):
    MIGRATED = "migrated"
    FAILED = "failed"


# Request Models
class MigrationCreate(BaseModel):
    source_dir: Optional[str] = None
    firebase_project: Optional[str] = None
    output_dir: str = "./supabase/functions"
    report_filename: str = "migration_report.json"
    firebase_cli: str = "firebase"


class ScanRequest(BaseModel):
    content: str
    file_path: str = ""


class RewriteRequest(BaseModel):
    body: str


# Response Models
class UnitSummaryResponse(BaseModel):
    name: str
    trigger_kind: str
    status: UnitStatusEnum
    output_path: Optional[str] = None
    error_message: Optional[str] = None
    needs_review: bool = False


class MigrationResponse(BaseModel):
    id: str
    source: str
    output_dir: str
    total: int = 0
    migrated_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    units: List[UnitSummaryResponse] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    fatal: bool = False
    cancelled: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    report_path: Optional[str] = None


class MigrationListResponse(BaseModel):
    migrations: List[MigrationResponse]
    total: int


class FunctionRecordResponse(BaseModel):
    name: str
    trigger_kind: str
    source_file: str = ""
    rule: str = ""
    document_path: Optional[str] = None
    document_event: Optional[str] = None
    identity_event: Optional[str] = None
    blob_event: Optional[str] = None
    schedule: Optional[str] = None
    topic: Optional[str] = None
    url: Optional[str] = None
    raw_match: str = ""
    body: str = ""


class ScanResponse(BaseModel):
    functions: List[FunctionRecordResponse]
    total: int


class GeneratedUnitResponse(BaseModel):
    name: str
    trigger_kind: str
    code: str
    manifest: Dict[str, Any] = Field(default_factory=dict)
    companion_sql: Optional[str] = None
    needs_review: bool = False


class GenerateResponse(BaseModel):
    units: List[GeneratedUnitResponse]
    skipped: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)


class RewriteResponse(BaseModel):
    body: str
    needs_review: bool
    reasons: List[str] = Field(default_factory=list)
