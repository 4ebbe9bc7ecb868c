"""
In-process workspace store.

Holds every project and the global activity log. Snapshots handed out are deep
copies, so callers never alias stored state and must re-read after a mutation.
All writes funnel through `upsert_project`, `add_project` and `remove_project`.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from logging_config import get_logger
from models.activity import ActivityModel
from models.project import ProjectModel
from models.task import TaskModel
from models.user import UserModel

logger = get_logger("store")

ProjectListener = Callable[[ProjectModel], None]


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


class WorkspaceStore:
    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _default_clock
        self._projects: List[ProjectModel] = []
        self._activities: List[ActivityModel] = []
        self._listeners: List[ProjectListener] = []
        self._last_tick: Optional[datetime] = None

    # --- Clock ---

    def now(self) -> datetime:
        """Strictly increasing timestamps, so successive events never tie."""
        tick = self._clock()
        if self._last_tick is not None and tick <= self._last_tick:
            tick = self._last_tick + timedelta(microseconds=1)
        self._last_tick = tick
        return tick

    # --- Projects ---

    def find_project(self, project_id: str) -> Optional[ProjectModel]:
        project = self._find(project_id)
        return project.model_copy(deep=True) if project else None

    def list_projects(self, search: Optional[str] = None) -> List[ProjectModel]:
        """Projects by last activity, most recent first. Projects with no activity go last."""
        projects = self._projects
        if search:
            needle = search.casefold()
            projects = [p for p in projects if needle in p.name.casefold()]
        ordered = sorted(
            projects,
            key=lambda p: p.last_activity or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return [p.model_copy(deep=True) for p in ordered]

    def add_project(self, project: ProjectModel) -> ProjectModel:
        if self._find(project.id) is not None:
            logger.warning("Project already stored, use upsert_project", extra={"data": {"project_id": project.id}})
            return self.find_project(project.id)
        stored = project.model_copy(deep=True)
        self._projects.insert(0, stored)
        logger.info("Project added", extra={"data": {"project_id": project.id, "name": project.name}})
        self._notify(stored)
        return stored.model_copy(deep=True)

    def upsert_project(self, project: ProjectModel) -> bool:
        """Replace the stored project with the same id. Unknown ids are ignored."""
        for index, existing in enumerate(self._projects):
            if existing.id == project.id:
                stored = project.model_copy(deep=True)
                self._projects[index] = stored
                self._notify(stored)
                return True
        logger.debug("Upsert ignored for unknown project", extra={"data": {"project_id": project.id}})
        return False

    def remove_project(self, project_id: str) -> bool:
        project = self._find(project_id)
        if project is None:
            return False
        self._projects.remove(project)
        logger.info("Project removed", extra={"data": {"project_id": project_id}})
        self._notify(project)
        return True

    def _find(self, project_id: str) -> Optional[ProjectModel]:
        return next((p for p in self._projects if p.id == project_id), None)

    # --- Activities ---

    def add_activity(
        self,
        type: str,
        actor: UserModel,
        project: ProjectModel,
        task: Optional[TaskModel] = None,
        message_preview: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        assignee: Optional[UserModel] = None,
    ) -> ActivityModel:
        activity = ActivityModel(
            type=type,
            timestamp=timestamp or self.now(),
            actor_id=actor.id,
            actor_name=actor.name,
            assignee_id=assignee.id if assignee else None,
            assignee_name=assignee.name if assignee else None,
            project_id=project.id,
            project_name=project.name,
            task_id=task.id if task else None,
            task_title=task.title if task else None,
            message_preview=message_preview,
        )
        # Newest first
        self._activities.insert(0, activity)
        return activity

    def activities(self) -> List[ActivityModel]:
        return list(self._activities)

    # --- Change notification ---

    def subscribe(self, listener: ProjectListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ProjectListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, project: ProjectModel) -> None:
        for listener in list(self._listeners):
            try:
                listener(project.model_copy(deep=True))
            except Exception:
                logger.exception("Store listener failed", extra={"data": {"project_id": project.id}})

    # --- Maintenance ---

    def reset(self) -> None:
        self._projects.clear()
        self._activities.clear()
        self._last_tick = None


store = WorkspaceStore()
