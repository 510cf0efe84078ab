from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    gitlab_base_url: str
    gitlab_token: str
    page_size: int = 100
    request_timeout: int = 15
    retry_transient_errors: bool = True


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def load_dotenv(path: str | None = None) -> None:
    env_path = Path(path or os.getenv("GITLAB_TOOLS_ENV_FILE", ".env"))
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("\"").strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def expand_project_paths(projects: list[str], group: str | None = None) -> list[str]:
    """Prefix bare project names with ``group``; paths containing ``/`` are kept as given.

    Order and duplicates are preserved.
    """
    group = (group or "").strip().strip("/")
    expanded: list[str] = []
    for project in projects:
        if group and "/" not in project:
            expanded.append(f"{group}/{project}")
        else:
            expanded.append(project)
    return expanded


def load_settings(base_url: str | None = None, token: str | None = None) -> Settings:
    base_url = base_url or os.getenv("GITLAB_BASE_URL")
    token = token or os.getenv("GITLAB_TOKEN")

    if not base_url:
        raise ValueError("GitLab URL must be provided via --gitlab-url or GITLAB_BASE_URL env")
    if not token:
        raise ValueError("GitLab token must be provided via --token or GITLAB_TOKEN env")

    page_size = int(os.getenv("PAGE_SIZE", "100"))
    if page_size < 1:
        raise ValueError("PAGE_SIZE must be >= 1")

    return Settings(
        gitlab_base_url=base_url.rstrip("/"),
        gitlab_token=token,
        page_size=page_size,
        request_timeout=int(os.getenv("REQUEST_TIMEOUT", "15")),
        retry_transient_errors=_env_flag("RETRY_TRANSIENT_ERRORS", "true"),
    )
