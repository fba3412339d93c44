# studio_planner/storage/repository.py

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from studio_planner.config import AuthorizationError, Settings, require_admin
from studio_planner.engine.models import PlanningEntry, Project
from studio_planner.storage.base import ConnectionFailedError, Kind, StorageError, Store, is_ok
from studio_planner.storage.local_store import LocalStore
from studio_planner.storage.remote_store import RemoteStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Repository:
    """
    Typed access to projects and planning entries.

    With a remote configured:
      - project reads never fall back to local data (ConnectionFailedError)
      - plan reads and every write fall back to the local store when the
        remote is unreachable
    Without a remote, the local store is used directly.
    """

    def __init__(self, local: LocalStore, remote: Optional[Store] = None, admin_key: str = "TANPHAT"):
        self.local = local
        self.remote = remote
        self.admin_key = admin_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "Repository":
        local = LocalStore(settings.data_dir, admin_key=settings.admin_key)
        remote = RemoteStore(settings.api_url, timeout=settings.request_timeout) if settings.remote_enabled else None
        return cls(local, remote, admin_key=settings.admin_key)

    # ---------------------------------------------------------
    # Plumbing
    # ---------------------------------------------------------

    def _write(self, label: str, call: Callable[[Store], Dict[str, Any]]) -> Dict[str, Any]:
        response = None
        if self.remote is not None:
            try:
                response = call(self.remote)
            except StorageError as exc:
                logger.warning("%s: remote failed (%s); writing locally", label, exc)
        if response is None:
            response = call(self.local)

        if not is_ok(response):
            message = (response or {}).get("message") or f"{label} failed"
            raise StorageError(message)
        return response

    # ---------------------------------------------------------
    # Projects
    # ---------------------------------------------------------

    def load_projects(self) -> List[Project]:
        if self.remote is not None:
            try:
                rows = self.remote.read(Kind.PROJECTS)
            except StorageError as exc:
                logger.error("Project load failed; refusing to serve stale local data: %s", exc)
                raise ConnectionFailedError("Could not connect to the project store.") from exc
        else:
            rows = self.local.read(Kind.PROJECTS)
        return [Project.from_dict(r) for r in rows]

    def create_project(self, project: Project) -> Project:
        payload = project.to_dict()
        if payload["id"].startswith("LOCAL-") and self.remote is not None:
            # Let the remote assign its own id.
            payload.pop("id")
        response = self._write("create project", lambda s: s.create(Kind.PROJECTS, payload))
        data = response.get("data") or {**payload, "id": response.get("id", project.id)}
        return Project.from_dict(data)

    def update_project(self, project: Project) -> Project:
        self._write("update project", lambda s: s.update(Kind.PROJECTS, project.to_dict()))
        return project

    def delete_project(self, project_id: str, auth_token: str) -> None:
        require_admin(self.admin_key, auth_token)
        self._write("delete project", lambda s: s.delete(Kind.PROJECTS, project_id, auth_token))

    # ---------------------------------------------------------
    # Planning entries
    # ---------------------------------------------------------

    def load_plans(self) -> List[PlanningEntry]:
        rows = None
        if self.remote is not None:
            try:
                rows = self.remote.read(Kind.PLANS)
            except StorageError as exc:
                logger.warning("Plan load failed remotely (%s); using local plans", exc)
        if rows is None:
            rows = self.local.read(Kind.PLANS)
        return [PlanningEntry.from_dict(r) for r in rows]

    def create_plan(self, entry: PlanningEntry) -> PlanningEntry:
        self._write("create plan", lambda s: s.create(Kind.PLANS, entry.to_dict()))
        return entry

    def update_plan(self, entry: PlanningEntry) -> PlanningEntry:
        self._write("update plan", lambda s: s.update(Kind.PLANS, entry.to_dict()))
        return entry

    def delete_plan(self, plan_id: str) -> None:
        self._write("delete plan", lambda s: s.delete(Kind.PLANS, plan_id))

    def review_plan(self, plan_id: str, score: int, comment: str) -> None:
        self._write("review plan", lambda s: s.review_plan(plan_id, score, comment))


# ---------------------------------------------------------
# Optimistic updates
# ---------------------------------------------------------

def optimistic_update(current: T, proposed: T, persist: Callable[[], Any]) -> Tuple[T, Optional[Exception]]:
    """
    Run ``persist`` and pick the state to keep: ``proposed`` once it has
    been saved, ``current`` when saving fails. Callers show ``proposed``
    only after this returns.

    Returns (state to keep, error). On any storage or authorization failure
    the previous state comes back together with the error, so every
    create/update/delete rolls back the same way.
    """
    try:
        persist()
    except (StorageError, AuthorizationError) as exc:
        logger.warning("Rolling back optimistic change: %s", exc)
        return current, exc
    return proposed, None
