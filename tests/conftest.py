from __future__ import annotations

from collections import Counter
from pathlib import Path

import pytest

from gltools.models import Commit, Compare, MergeRequest, Project


@pytest.fixture(autouse=True)
def isolate_test_environment(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("GITLAB_BASE_URL", raising=False)
    monkeypatch.delenv("GITLAB_TOKEN", raising=False)
    monkeypatch.delenv("PAGE_SIZE", raising=False)
    monkeypatch.delenv("REQUEST_TIMEOUT", raising=False)
    monkeypatch.delenv("RETRY_TRANSIENT_ERRORS", raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.setenv("GITLAB_TOOLS_ENV_FILE", str(tmp_path / ".nonexistent"))


class FakeGitLab:
    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}
        self.branches: dict[int, set[str]] = {}
        self.merge_requests: dict[int, list[MergeRequest]] = {}
        self.commits: dict[int, list[Commit]] = {}
        self.topics: dict[str, list[Project]] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: Counter[str] = Counter()
        self.created: list[dict] = []
        self.accepted: list[tuple[int, int]] = []
        self._next_iid = 100

    def add_project(self, path: str, project_id: int, branches: tuple[str, ...] = (), commits: int = 1) -> Project:
        project = Project(
            id=project_id,
            name=path.rsplit("/", 1)[-1],
            path_with_namespace=path,
            web_url=f"https://gitlab.example.com/{path}",
        )
        self.projects[path] = project
        self.branches[project_id] = set(branches)
        self.commits[project_id] = [Commit(id=f"c{i}", short_id=f"c{i}", title=f"commit {i}") for i in range(commits)]
        return project

    def add_merge_request(self, project_id: int, iid: int, title: str = "Merge a into b", draft: bool = False) -> MergeRequest:
        mr = MergeRequest(
            id=iid * 10,
            iid=iid,
            title=title,
            web_url=f"https://gitlab.example.com/mr/{iid}",
            state="opened",
            draft=draft,
            project_id=project_id,
        )
        self.merge_requests.setdefault(project_id, []).append(mr)
        return mr

    def _maybe_fail(self, op: str) -> None:
        self.calls[op] += 1
        if op in self.failures:
            raise self.failures[op]

    def get_project(self, project_path: str) -> Project:
        self._maybe_fail("get_project")
        if project_path not in self.projects:
            raise RuntimeError(f"failed to get project {project_path}: 404: 404 Project Not Found")
        return self.projects[project_path]

    def branch_exists(self, project_id: int, branch: str) -> bool:
        self._maybe_fail("branch_exists")
        return branch in self.branches.get(project_id, set())

    def compare_branches(self, project_id: int, source_branch: str, target_branch: str) -> Compare:
        self._maybe_fail("compare_branches")
        return Compare(commits=list(self.commits.get(project_id, [])))

    def find_open_merge_requests(self, project_id: int, source_branch: str, target_branch: str) -> list[MergeRequest]:
        self._maybe_fail("find_open_merge_requests")
        return list(self.merge_requests.get(project_id, []))

    def create_merge_request(
        self,
        project_id: int,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
    ) -> MergeRequest:
        self._maybe_fail("create_merge_request")
        self._next_iid += 1
        self.created.append(
            {
                "project_id": project_id,
                "source_branch": source_branch,
                "target_branch": target_branch,
                "title": title,
                "description": description,
            }
        )
        return MergeRequest(
            id=self._next_iid * 10,
            iid=self._next_iid,
            title=title,
            web_url=f"https://gitlab.example.com/mr/{self._next_iid}",
            state="opened",
            source_branch=source_branch,
            target_branch=target_branch,
            project_id=project_id,
        )

    def list_all_projects_by_topic(self, topic: str, per_page: int | None = None) -> list[Project]:
        self._maybe_fail("list_all_projects_by_topic")
        return list(self.topics.get(topic, []))

    def list_open_merge_requests_by_target(self, project_id: int, target_branch: str) -> list[MergeRequest]:
        self._maybe_fail(f"list_open_merge_requests_by_target:{project_id}")
        return list(self.merge_requests.get(project_id, []))

    def accept_merge_request(self, project_id: int, mr_iid: int) -> MergeRequest:
        self._maybe_fail("accept_merge_request")
        self.accepted.append((project_id, mr_iid))
        return MergeRequest(id=mr_iid * 10, iid=mr_iid, state="merged", project_id=project_id)


@pytest.fixture
def fake_gitlab() -> FakeGitLab:
    return FakeGitLab()
