from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Union

import requests

from parts_logic.models.errors import AllocationConflict, CatalogUnavailable
from parts_logic.models.types import Part, PartType, coerce_part_type

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000

# GET and DELETE /parts/{id} answer 422 for ids that are not UUIDs; no such part exists either way.
NOT_FOUND = (404, 422)


class ApiRepo:
    """Part catalog served by the parts backend (FastAPI, PostgreSQL).

    Same operations as the local `Repo`. Every transport or server failure
    surfaces as CatalogUnavailable; a 409 on insert surfaces as
    AllocationConflict. Nothing falls back to local data.
    """

    def __init__(self, api_url: str, api_session: Optional[requests.Session] = None, timeout: float = 20):
        self.api_url = api_url.rstrip("/")
        self.api_session = api_session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.api_url}{path}"
        try:
            return self.api_session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Parts backend unreachable (%s %s): %s", method, url, e)
            raise CatalogUnavailable(f"Parts backend unreachable: {e}") from e

    @staticmethod
    def _check(resp: requests.Response) -> None:
        # Checked on the status code so any requests-compatible session behaves the same.
        if resp.status_code >= 400:
            logger.warning("Parts backend returned %s for %s", resp.status_code, resp.url)
            raise CatalogUnavailable(f"Parts backend error {resp.status_code} for {resp.url}")

    def _list(self, **filters: Any) -> List[Part]:
        """Fetch every page of GET /parts for the given filters."""
        params = {k: v for k, v in filters.items() if v is not None}
        params.update({"paged": "true", "limit": PAGE_SIZE, "offset": 0})
        parts: List[Part] = []
        while True:
            resp = self._request("GET", "/parts", params=dict(params))
            self._check(resp)
            body = resp.json() or {}
            parts.extend(Part.from_record(rec) for rec in body.get("items") or [])
            next_offset = body.get("next_offset")
            if next_offset is None:
                return parts
            params["offset"] = next_offset

    # -----------------
    # Queries
    # -----------------
    def query_all_parts(self) -> List[Part]:
        return self._list()

    def query_parts_by_type(self, part_type: Union[PartType, str]) -> List[Part]:
        return self._list(type=coerce_part_type(part_type).value)

    def query_sub_parts(self, parent_part_id: str) -> List[Part]:
        return self._list(parent_part_id=parent_part_id)

    def count_sub_parts(self, parent_part_id: str) -> int:
        resp = self._request("GET", "/parts/count", params={"parent_part_id": parent_part_id})
        self._check(resp)
        return int((resp.json() or {}).get("count", 0))

    def query_part_names(self, prefix: str) -> List[str]:
        return [p.name for p in self._list(name_prefix=prefix)]

    def get_part(self, part_id: str) -> Optional[Part]:
        resp = self._request("GET", f"/parts/{part_id}")
        if resp.status_code in NOT_FOUND:
            return None
        self._check(resp)
        return Part.from_record(resp.json())

    def name_exists(self, name: str) -> bool:
        resp = self._request("GET", "/parts/exists", params={"name": name})
        self._check(resp)
        return bool((resp.json() or {}).get("exists"))

    # -----------------
    # Writes
    # -----------------
    def insert_part(self, payload: Dict[str, Any]) -> Part:
        resp = self._request("POST", "/parts", json=payload)
        if resp.status_code == 409:
            raise AllocationConflict(payload["name"])
        self._check(resp)
        return Part.from_record(resp.json())

    def update_part(self, part_id: str, changes: Dict[str, Any]) -> Part:
        if "name" in changes:
            raise ValueError("Part names are assigned once and cannot be changed.")
        resp = self._request("PATCH", f"/parts/{part_id}", json=changes)
        if resp.status_code == 404:
            raise KeyError(part_id)
        self._check(resp)
        return Part.from_record(resp.json())

    def delete_part(self, part_id: str) -> bool:
        resp = self._request("DELETE", f"/parts/{part_id}")
        if resp.status_code in NOT_FOUND:
            return False
        self._check(resp)
        return True

    def next_sequence(self, prefix: str) -> int:
        resp = self._request("POST", f"/sequences/{prefix}/next")
        self._check(resp)
        return int(resp.json()["value"])
