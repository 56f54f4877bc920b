"""New-task dialog: open/close 상태 머신 + draft"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from voltboard.models import TaskDraft, ViewerState
from voltboard.mutations import TaskMutationService

logger = logging.getLogger(__name__)


class EditorClosedError(RuntimeError):
    pass


class TaskEditor:
    """Holds the draft between openings; ``reset()`` goes back to the defaults."""

    def __init__(self, service: TaskMutationService, defaults: TaskDraft | None = None) -> None:
        self.service = service
        self.defaults = defaults or TaskDraft()
        self.draft = self.defaults
        self.state = ViewerState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == ViewerState.OPEN

    def open(self) -> TaskDraft:
        self.state = ViewerState.OPEN
        return self.draft

    def update(self, **fields: Any) -> TaskDraft:
        if not self.is_open:
            raise EditorClosedError("Task editor is closed")
        self.draft = TaskDraft.model_validate({**self.draft.model_dump(), **fields})
        return self.draft

    def reset(self) -> TaskDraft:
        self.draft = self.defaults
        return self.draft

    def send(self) -> asyncio.Task:
        if not self.is_open:
            raise EditorClosedError("Task editor is closed")
        # the dialog closes right away; the POST completes in the background
        self.state = ViewerState.CLOSED
        logger.info("Submitting task %s: %s", self.draft.docker_image, self.draft.cmd)
        return self.service.dispatch(self.service.submit(self.draft))

    def cancel(self) -> None:
        self.state = ViewerState.CLOSED
