"""Loader that inserts relations through the Supabase REST API."""

import json
import logging
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from typing import Any, Dict, List, Optional

from .base import BaseLoader
from .json_writer import json_default

logger = logging.getLogger(__name__)


class SupabaseLoader(BaseLoader):
    """
    Loader for Supabase tables via PostgREST.

    Each chunk is one POST to /rest/v1/<table>. With upsert enabled rows
    conflicting on the on_conflict column are merged instead of rejected.
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        dry_run: bool = False,
        batch_size: int = 1000,
        upsert: bool = True,
        on_conflict: Optional[str] = "firestore_id",
        session: Optional[requests.Session] = None,
        timeout: int = 60
    ):
        """
        Initialize the Supabase loader.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            service_role_key: Service role key used for apikey and bearer auth
            dry_run: If True, count records without calling the API
            batch_size: Records per request
            upsert: Merge duplicates instead of failing on them
            on_conflict: Column that identifies duplicates when upserting
            session: Preconfigured session (mainly for tests)
            timeout: Request timeout in seconds
        """
        super().__init__(dry_run=dry_run, batch_size=batch_size)
        if not dry_run:
            if not url:
                raise ValueError("Supabase URL is required")
            if not service_role_key:
                raise ValueError("Supabase service role key is required")
        self.url = (url or "").rstrip("/")
        self.service_role_key = service_role_key
        self.upsert = upsert
        self.on_conflict = on_conflict
        self.timeout = timeout
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        retries = Retry(
            total=3,
            backoff_factor=2.0,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=None,
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _headers(self) -> Dict[str, str]:
        prefer = ["return=minimal"]
        if self.upsert:
            prefer.append("resolution=merge-duplicates")
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Content-Type": "application/json",
            "Prefer": ",".join(prefer),
        }

    def endpoint(self, table: str) -> str:
        return f"{self.url}/rest/v1/{table}"

    def load_chunk(self, table: str, records: List[Dict[str, Any]]) -> None:
        """POST one chunk, raising on any non-success response."""
        params = {}
        if self.upsert and self.on_conflict:
            params["on_conflict"] = self.on_conflict

        response = self._session.post(
            self.endpoint(table),
            headers=self._headers(),
            params=params,
            data=json.dumps(records, default=json_default),
            timeout=self.timeout,
        )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            detail = response.text
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("message") or body.get("error") or str(body)
            except ValueError:
                pass
            raise RuntimeError(f"HTTP {response.status_code}: {detail}") from e

    def validate_connection(self) -> bool:
        """Validate the connection to Supabase."""
        if self.dry_run:
            return True
        try:
            response = self._session.get(
                f"{self.url}/rest/v1/",
                headers=self._headers(),
                timeout=self.timeout,
            )
            return response.status_code < 400
        except requests.exceptions.RequestException as e:
            logger.error(f"Connection validation failed: {e}")
            return False
