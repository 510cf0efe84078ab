from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DRAFT_TITLE_PREFIXES = ("draft:", "wip:")


def is_draft(draft: bool, title: str) -> bool:
    """Return True when an MR is a draft by flag or by legacy title prefix."""
    if draft:
        return True
    lowered = (title or "").strip().lower()
    return lowered.startswith(DRAFT_TITLE_PREFIXES)


@dataclass
class Project:
    id: int
    name: str = ""
    path_with_namespace: str = ""
    web_url: str = ""
    description: str = ""
    topics: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Project:
        return cls(
            id=int(raw["id"]),
            name=raw.get("name") or "",
            path_with_namespace=raw.get("path_with_namespace") or "",
            web_url=raw.get("web_url") or "",
            description=raw.get("description") or "",
            topics=list(raw.get("topics") or []),
        )


@dataclass
class Topic:
    id: int
    name: str = ""
    title: str = ""
    description: str = ""
    total_projects_count: int = 0

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Topic:
        return cls(
            id=int(raw["id"]),
            name=raw.get("name") or "",
            title=raw.get("title") or "",
            description=raw.get("description") or "",
            total_projects_count=int(raw.get("total_projects_count") or 0),
        )


@dataclass
class MergeRequest:
    id: int
    iid: int
    title: str = ""
    web_url: str = ""
    state: str = ""
    draft: bool = False
    source_branch: str = ""
    target_branch: str = ""
    project_id: int = 0

    @property
    def is_draft(self) -> bool:
        return is_draft(self.draft, self.title)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> MergeRequest:
        # Older GitLab releases only expose work_in_progress.
        draft = raw.get("draft")
        if draft is None:
            draft = raw.get("work_in_progress", False)
        return cls(
            id=int(raw.get("id") or 0),
            iid=int(raw.get("iid") or 0),
            title=raw.get("title") or "",
            web_url=raw.get("web_url") or "",
            state=raw.get("state") or "",
            draft=bool(draft),
            source_branch=raw.get("source_branch") or "",
            target_branch=raw.get("target_branch") or "",
            project_id=int(raw.get("project_id") or 0),
        )


@dataclass
class Commit:
    id: str
    short_id: str = ""
    title: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Commit:
        return cls(
            id=raw.get("id") or "",
            short_id=raw.get("short_id") or "",
            title=raw.get("title") or "",
        )


@dataclass
class Compare:
    commits: list[Commit] = field(default_factory=list)
    diffs: list[dict[str, Any]] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return len(self.commits) > 0

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Compare:
        return cls(
            commits=[Commit.from_api(c) for c in raw.get("commits") or []],
            diffs=list(raw.get("diffs") or []),
        )
