"""Recursive export of a Firestore collection tree into flat relations."""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime

from ..models.migration import SubcollectionMode
from ..models.record import (
    COLLECTION_PATH_FIELD,
    PARENT_COLLECTION_FIELD,
    PARENT_DOCUMENT_ID_FIELD,
    ExportResult,
    assign_identity,
)
from ..loaders.json_writer import JSONRecordWriter, sanitize_relation_name
from .hooks import DocumentHook

logger = logging.getLogger(__name__)


# Key under which nested documents are attached in nest mode
SUBCOLLECTIONS_FIELD = "subcollections"

# (parent relation, parent document id, collection path)
Linkage = Tuple[str, str, str]


class FirestoreExporter:
    """
    Exports a root collection, and optionally its subcollections, to
    relation files.

    Root documents are paged with limit/offset queries. Each document's
    nested collections are walked up to max_depth hops, fetching at most
    subcollection_limit documents per nested collection. In flatten mode
    every nesting chain becomes its own relation named
    `<parent relation>_<subcollection>`, with linkage columns pointing
    back to the parent; in nest mode nested documents are embedded in
    their parent record instead.

    A failure listing or fetching a nested collection is logged and
    recorded; the rest of the walk continues.
    """

    def __init__(
        self,
        client,
        writer: JSONRecordWriter,
        hooks: Optional[Dict[str, DocumentHook]] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Initialize the exporter.

        Args:
            client: Firestore client (anything with collection(name))
            writer: Record writer receiving each relation's records
            hooks: Per-relation document hooks
            cancel_event: Set to stop between batches
        """
        self.client = client
        self.writer = writer
        self.hooks = hooks or {}
        self.cancel_event = cancel_event

        # Per-run settings, assigned by export()
        self._include_subcollections = False
        self._max_depth = 0
        self._subcollection_limit = 0
        self._mode = SubcollectionMode.FLATTEN

    def export(
        self,
        collection_name: str,
        batch_size: int = 1000,
        limit: int = 0,
        include_subcollections: bool = False,
        max_depth: int = 3,
        subcollection_limit: int = 100,
        subcollection_mode: str = "flatten"
    ) -> ExportResult:
        """
        Export a collection.

        Args:
            collection_name: Root collection to export
            batch_size: Root documents fetched per query
            limit: Maximum root documents, 0 for no limit
            include_subcollections: Walk nested collections
            max_depth: Maximum nested collection hops
            subcollection_limit: Maximum documents fetched per nested collection
            subcollection_mode: "flatten" or "nest"

        Returns:
            ExportResult with per-relation counts and contained errors

        Raises:
            ValueError: If a bound is out of range
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if limit < 0:
            raise ValueError("limit must not be negative")
        if max_depth < 0:
            raise ValueError("max_depth must not be negative")
        if subcollection_limit <= 0:
            raise ValueError("subcollection_limit must be positive")

        self._include_subcollections = include_subcollections
        self._max_depth = max_depth
        self._subcollection_limit = subcollection_limit
        self._mode = SubcollectionMode(subcollection_mode)

        self.writer.reset()
        result = ExportResult(collection=collection_name)
        result.started_at = datetime.utcnow()
        root_relation = sanitize_relation_name(collection_name)
        result.relation(root_relation)

        logger.info(f"Exporting collection {collection_name}")
        try:
            self._page_root(result, collection_name, root_relation, batch_size, limit)
        finally:
            self.writer.finalize(result.relations)
            for relation in result.relations.values():
                relation.file_path = str(self.writer.path_for(relation.name))
            result.completed_at = datetime.utcnow()

        for name, count in result.counts.items():
            logger.info(f"{name}: {count} records")
        if result.errors:
            logger.warning(f"Export finished with {len(result.errors)} errors")
        return result

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _page_root(
        self,
        result: ExportResult,
        collection_name: str,
        root_relation: str,
        batch_size: int,
        limit: int
    ) -> None:
        """Fetch root documents batch by batch until exhausted."""
        collection = self.client.collection(collection_name)
        offset = 0

        while True:
            if self._cancelled():
                logger.warning(f"Export of {collection_name} cancelled after {offset} documents")
                result.cancelled = True
                return

            size = batch_size if limit == 0 else min(batch_size, limit - offset)
            if size <= 0:
                return

            try:
                batch = list(collection.limit(size).offset(offset).get())
            except Exception as e:
                logger.error(f"Failed to fetch {collection_name} at offset {offset}: {e}")
                result.add_error(f"Batch fetch failed at offset {offset}: {e}", collection_name)
                return

            if not batch:
                return

            for document in batch:
                self._export_document(result, document, root_relation, 0, collection_name)

            offset += len(batch)
            logger.info(f"Processed {offset} documents from {collection_name}")

    def _export_document(
        self,
        result: ExportResult,
        document,
        relation: str,
        depth: int,
        collection_path: str,
        linkage: Optional[Linkage] = None
    ) -> Dict[str, Any]:
        """Build a document's record, walk its children and write it."""
        record = document.to_dict() or {}
        assign_identity(record, document.id)

        if linkage is not None:
            parent_relation, parent_id, path = linkage
            record[PARENT_COLLECTION_FIELD] = parent_relation
            record[PARENT_DOCUMENT_ID_FIELD] = parent_id
            record[COLLECTION_PATH_FIELD] = path

        walk = self._include_subcollections and depth < self._max_depth
        nesting = self._mode == SubcollectionMode.NEST

        if walk and nesting:
            record[SUBCOLLECTIONS_FIELD] = self._walk(result, document, relation, depth, collection_path)

        # Nested documents in nest mode live inside their parent
        written = False
        if depth == 0 or not nesting:
            written = self._write(result, relation, record, self._document_key(document, relation), depth)

        # Only documents that were written get their children exported
        if walk and not nesting and written:
            self._walk(result, document, relation, depth, collection_path)

        return record

    def _walk(
        self,
        result: ExportResult,
        document,
        relation: str,
        depth: int,
        collection_path: str
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Export the nested collections of one document."""
        nested: Dict[str, List[Dict[str, Any]]] = {}
        document_path = f"{collection_path}/{document.id}"

        try:
            subcollections = list(document.reference.collections())
        except Exception as e:
            logger.error(f"Failed to list subcollections of {document_path}: {e}")
            result.add_error(f"Subcollection listing failed: {e}", document_path)
            return nested

        for subcollection in subcollections:
            if self._cancelled():
                result.cancelled = True
                break

            child_relation = sanitize_relation_name(f"{relation}_{subcollection.id}")
            child_path = f"{document_path}/{subcollection.id}"

            try:
                children = list(subcollection.limit(self._subcollection_limit).get())
            except Exception as e:
                logger.error(f"Failed to fetch subcollection {child_path}: {e}")
                result.add_error(f"Subcollection fetch failed: {e}", child_path)
                continue

            if self._mode == SubcollectionMode.FLATTEN:
                result.relation(child_relation, depth + 1, relation)

            logger.debug(f"Exporting {len(children)} documents from {child_path}")
            nested[subcollection.id] = [
                self._export_document(
                    result,
                    child,
                    child_relation,
                    depth + 1,
                    child_path,
                    (relation, document.id, child_path),
                )
                for child in children
            ]

        return nested

    def _document_key(self, document, relation: str) -> str:
        reference = getattr(document, "reference", None)
        path = getattr(reference, "path", None)
        return path or f"{relation}/{document.id}"

    def _write(
        self,
        result: ExportResult,
        relation: str,
        record: Dict[str, Any],
        key: str,
        depth: int
    ) -> bool:
        """Run the relation's hook, drop duplicates and write the record; False if not written."""
        if not result.mark_seen(relation, key):
            logger.debug(f"Skipping duplicate document {key}")
            result.duplicates_skipped += 1
            return False

        hook = self.hooks.get(relation)
        if hook is not None:
            try:
                record = hook(relation, record, lambda name, extra: self._emit(result, name, extra))
            except Exception as e:
                logger.error(f"Hook for {relation} failed on {key}: {e}")
                result.add_error(f"Hook failed: {e}", key)
                return False
            if record is None:
                result.documents_dropped += 1
                return False

        self.writer.write_record(relation, record)
        result.relation(relation, depth).count += 1
        return True

    def _emit(self, result: ExportResult, relation: str, record: Dict[str, Any]) -> None:
        """Write an extra record produced by a hook."""
        name = sanitize_relation_name(relation)
        self.writer.write_record(name, record)
        result.relation(name).count += 1
