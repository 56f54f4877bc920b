"""MetricsSnapshot, Task, TaskDraft, TaskCollection, FileView 모델"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

ERROR_MARKER = "error"


class TaskState(str, Enum):
    STAGING = "TASK_STAGING"
    STARTING = "TASK_STARTING"
    RUNNING = "TASK_RUNNING"
    FINISHED = "TASK_FINISHED"
    FAILED = "TASK_FAILED"
    KILLED = "TASK_KILLED"
    LOST = "TASK_LOST"
    ERROR = "TASK_ERROR"


# mesosproto.TaskState enum numbers
_MESOS_STATE_NUMBERS = {
    0: TaskState.STARTING,
    1: TaskState.RUNNING,
    2: TaskState.FINISHED,
    3: TaskState.FAILED,
    4: TaskState.KILLED,
    5: TaskState.LOST,
    6: TaskState.STAGING,
    7: TaskState.ERROR,
}

TERMINAL_STATES = frozenset({TaskState.FINISHED, TaskState.FAILED, TaskState.KILLED, TaskState.LOST, TaskState.ERROR})


class MetricsSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    used_cpus: float = Field(ge=0)
    total_cpus: float = Field(ge=0)
    used_mem: float = Field(ge=0)
    total_mem: float = Field(ge=0)
    used_disk: float = Field(ge=0)
    total_disk: float = Field(ge=0)

    # used > total is a display artifact, never an error
    @property
    def free_cpus(self) -> float:
        return max(self.total_cpus - self.used_cpus, 0)

    @property
    def free_mem(self) -> float:
        return max(self.total_mem - self.used_mem, 0)

    @property
    def free_disk(self) -> float:
        return max(self.total_disk - self.used_disk, 0)


class TaskDraft(BaseModel):
    """A task built client-side, before the server assigns it an id."""

    model_config = ConfigDict(frozen=True)

    cpus: float = Field(default=0.1, gt=0)
    mem: float = Field(default=32, ge=0)
    disk: float = Field(default=0, ge=0)
    docker_image: str = "busybox"
    cmd: str = "/bin/ls"
    files: tuple[str, ...] = ()  # read back synchronously on create

    def to_payload(self) -> dict[str, Any]:
        data = self.model_dump(exclude={"files"})
        if self.files:
            data["files"] = list(self.files)
        return data


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    cmd: str = ""
    cpus: float = 0
    mem: float = 0
    disk: float = 0
    docker_image: str = ""
    files: tuple[str, ...] = ()
    slave_id: str | None = None
    state: TaskState | None = None

    @field_validator("files", mode="before")
    @classmethod
    def _none_files(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, v: Any) -> Any:
        if v is None or isinstance(v, TaskState):
            return v
        if isinstance(v, str) and v.isdigit():
            v = int(v)
        if isinstance(v, int):
            return _MESOS_STATE_NUMBERS.get(v)
        if isinstance(v, str):
            name = v.upper()
            if not name.startswith("TASK_"):
                name = f"TASK_{name}"
            try:
                return TaskState(name)
            except ValueError:
                return None
        return None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class TaskCollection(BaseModel):
    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...] = ()

    @classmethod
    def from_payload(cls, data: Any) -> TaskCollection:
        # Volt wraps the list as {"size": n, "tasks": [...]}; an empty store sends "tasks": null
        if isinstance(data, dict):
            if "tasks" not in data:
                raise ValueError("task list envelope has no 'tasks' key")
            data = data["tasks"] if data["tasks"] is not None else []
        if not isinstance(data, list):
            raise ValueError(f"task list must be a list, got {type(data).__name__}")
        return cls(tasks=data)

    @property
    def size(self) -> int:
        return len(self.tasks)

    def get(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


class ViewerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class FileView(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str
    file_name: str
    content: str | None = None  # None until the first fetch lands

    @property
    def is_error(self) -> bool:
        return self.content == ERROR_MARKER


class MutationAction(str, Enum):
    SUBMIT = "submit"
    KILL = "kill"
    REMOVE = "remove"


class MutationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: MutationAction
    ok: bool
    task_id: str | None = None
    status_code: int | None = None
    error: str = ""
    data: Any = None
