# studio_planner/storage/remote_store.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from studio_planner.storage.base import Kind, StorageError

logger = logging.getLogger(__name__)

READ_ACTIONS = {Kind.PROJECTS: "read", Kind.PLANS: "readPlanning"}
CREATE_ACTIONS = {Kind.PROJECTS: "create", Kind.PLANS: "create_plan"}
UPDATE_ACTIONS = {Kind.PROJECTS: "update", Kind.PLANS: "update_plan"}
DELETE_ACTIONS = {Kind.PROJECTS: "delete", Kind.PLANS: "delete_plan"}
REVIEW_ACTION = "updateKPI"


class RemoteStore:
    """
    HTTP backend. Reads are ``GET ?action=...``; writes POST a JSON body
    carrying an ``action`` field. Every network or protocol failure is
    raised as ``StorageError`` so the repository can decide on a fallback.

    Action names follow the existing backend. Payload field names are this
    project's own snake_case schema, the same keys the models write in
    ``to_dict``.
    """

    def __init__(self, api_url: str, timeout: float = 15.0, session: Optional[requests.Session] = None):
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _json(self, response) -> Any:
        if not response.ok:
            raise StorageError(f"Remote store returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise StorageError("Remote store returned invalid JSON") from exc

    def _get(self, action: str) -> Any:
        try:
            response = self.session.get(self.api_url, params={"action": action}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise StorageError(f"Remote read '{action}' failed: {exc}") from exc
        return self._json(response)

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise StorageError(f"Remote write '{payload.get('action')}' failed: {exc}") from exc
        data = self._json(response)
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected response to '{payload.get('action')}'")
        return data

    # ---------------------------------------------------------
    # Contract
    # ---------------------------------------------------------

    def read(self, kind: Kind) -> List[Dict[str, Any]]:
        data = self._get(READ_ACTIONS[Kind(kind)])
        return data if isinstance(data, list) else []

    def create(self, kind: Kind, partial: Dict[str, Any]) -> Dict[str, Any]:
        return self._post({"action": CREATE_ACTIONS[Kind(kind)], **partial})

    def update(self, kind: Kind, entity: Dict[str, Any]) -> Dict[str, Any]:
        return self._post({"action": UPDATE_ACTIONS[Kind(kind)], **entity})

    def delete(self, kind: Kind, entity_id: str, auth_token: Optional[str] = None) -> Dict[str, Any]:
        kind = Kind(kind)
        if kind == Kind.PROJECTS:
            return self._post({"action": DELETE_ACTIONS[kind], "id": entity_id, "security_key": auth_token or ""})
        return self._post({"action": DELETE_ACTIONS[kind], "plan_id": entity_id})

    def review_plan(self, plan_id: str, score: int, comment: str) -> Dict[str, Any]:
        return self._post({"action": REVIEW_ACTION, "plan_id": plan_id, "score": score, "comment": comment})
