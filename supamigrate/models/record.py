"""Record models for Firestore exports."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
from datetime import datetime


# Tried in order; the first name not already present on the document holds its id
IDENTITY_FIELDS = ("firestore_id", "firestoreid", "original_id", "originalid")

# Linkage columns stamped on every nested record
PARENT_COLLECTION_FIELD = "parent_collection"
PARENT_DOCUMENT_ID_FIELD = "parent_document_id"
COLLECTION_PATH_FIELD = "collection_path"


def assign_identity(data: Dict[str, Any], document_id: str) -> Optional[str]:
    """
    Store a document's id under the first free identity field.

    Args:
        data: Document data (modified in place)
        document_id: Original Firestore document id

    Returns:
        The field name used, or None when all candidates are taken
    """
    for name in IDENTITY_FIELDS:
        if not data.get(name):
            data[name] = document_id
            return name
    return None


@dataclass
class ExportedRelation:
    """One flattened output table produced during an export."""
    name: str
    depth: int = 0
    parent_collection: Optional[str] = None
    count: int = 0
    file_path: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.parent_collection is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "depth": self.depth,
            "parent_collection": self.parent_collection,
            "count": self.count,
            "file_path": self.file_path,
        }


@dataclass
class ExportResult:
    """Run-scoped state and outcome of one export."""
    collection: str
    relations: Dict[str, ExportedRelation] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    duplicates_skipped: int = 0
    documents_dropped: int = 0
    cancelled: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Keys of documents already written, per relation
    _seen: Dict[str, Set[str]] = field(default_factory=dict, repr=False)

    def relation(
        self,
        name: str,
        depth: int = 0,
        parent_collection: Optional[str] = None
    ) -> ExportedRelation:
        """Get a relation, creating it the first time its name is seen."""
        if name not in self.relations:
            self.relations[name] = ExportedRelation(
                name=name,
                depth=depth,
                parent_collection=parent_collection,
            )
        return self.relations[name]

    def mark_seen(self, relation: str, key: str) -> bool:
        """
        Remember a document key for a relation.

        Returns:
            False if the key was already written to that relation
        """
        seen = self._seen.setdefault(relation, set())
        if key in seen:
            return False
        seen.add(key)
        return True

    def add_error(self, message: str, path: Optional[str] = None) -> None:
        """Record a contained failure."""
        self.errors.append({
            "message": message,
            "path": path,
            "timestamp": datetime.utcnow().isoformat(),
        })

    @property
    def counts(self) -> Dict[str, int]:
        """Record count per relation."""
        return {name: rel.count for name, rel in self.relations.items()}

    @property
    def total_records(self) -> int:
        return sum(rel.count for rel in self.relations.values())

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "collection": self.collection,
            "relations": [r.to_dict() for r in self.relations.values()],
            "total_records": self.total_records,
            "errors": self.errors,
            "duplicates_skipped": self.duplicates_skipped,
            "documents_dropped": self.documents_dropped,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
