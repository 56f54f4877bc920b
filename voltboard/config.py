"""config.yaml → Pydantic 설정"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from voltboard.models import TaskDraft


_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


class AppConfig(BaseModel):
    api_url: str = "http://localhost:8080"  # Volt API root
    metrics_path: str = "/metrics"
    request_timeout: float = 10.0
    # Polling (seconds)
    metrics_interval: float = 5.0
    tasks_interval: float = 5.0
    file_follow_interval: float | None = None  # None = refresh on demand only
    # Consistency
    drop_stale_responses: bool = False  # sequence poll responses by issue order
    refresh_after_mutation: bool = True  # refresh task list after kill/delete
    # New-task dialog defaults
    draft: TaskDraft = Field(default_factory=TaskDraft)
    # Dashboard server
    host: str = "0.0.0.0"
    port: int = 9000


def load_config(path: Path | None = None) -> AppConfig:
    p = path or _CONFIG_PATH
    with open(p) as f:
        raw = yaml.safe_load(f) or {}
    return AppConfig(**raw)
