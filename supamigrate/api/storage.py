"""In-memory storage for migration reports."""

import threading
from typing import Dict, List, Optional

from .models import MigrationResponse


class MigrationStorage:
    """Thread-safe store of completed migration reports, newest last."""

    def __init__(self):
        self._reports: Dict[str, MigrationResponse] = {}
        self._lock = threading.Lock()

    def save(self, report: MigrationResponse) -> MigrationResponse:
        with self._lock:
            self._reports[report.id] = report
        return report

    def get(self, migration_id: str) -> Optional[MigrationResponse]:
        with self._lock:
            return self._reports.get(migration_id)

    def list_all(self) -> List[MigrationResponse]:
        with self._lock:
            return list(self._reports.values())

    def clear(self) -> None:
        with self._lock:
            self._reports.clear()


migration_storage = MigrationStorage()
