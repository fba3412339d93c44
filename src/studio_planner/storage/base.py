# studio_planner/storage/base.py

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


class Kind(str, Enum):
    PROJECTS = "projects"
    PLANS = "plans"


# Identity field per kind
ID_FIELDS = {Kind.PROJECTS: "id", Kind.PLANS: "plan_id"}


class StorageError(Exception):
    """A store could not complete a read or write."""


class ConnectionFailedError(StorageError):
    """The remote store is configured but unreachable; stale local data is not served instead."""


class Store(Protocol):
    def read(self, kind: Kind) -> List[Dict[str, Any]]: ...

    def create(self, kind: Kind, partial: Dict[str, Any]) -> Dict[str, Any]: ...

    def update(self, kind: Kind, entity: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete(self, kind: Kind, entity_id: str, auth_token: Optional[str] = None) -> Dict[str, Any]: ...

    def review_plan(self, plan_id: str, score: int, comment: str) -> Dict[str, Any]: ...


def ok(**extra) -> Dict[str, Any]:
    return {"status": "success", **extra}


def error(message: str) -> Dict[str, Any]:
    return {"status": "error", "message": message}


def is_ok(response: Optional[Dict[str, Any]]) -> bool:
    return isinstance(response, dict) and response.get("status") == "success"
