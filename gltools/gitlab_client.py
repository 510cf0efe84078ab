from __future__ import annotations

import logging
from typing import Any

import gitlab
import requests

from gltools.config import Settings
from gltools.models import Compare, MergeRequest, Project, Topic

logger = logging.getLogger(__name__)

USER_AGENT = "gitlab-tools/1.0.0"


class GitLabAPIError(RuntimeError):
    def __init__(self, message: str, response_code: int | None = None) -> None:
        super().__init__(message)
        self.response_code = response_code


def _wrap(context: str, exc: Exception) -> GitLabAPIError:
    code = getattr(exc, "response_code", None)
    return GitLabAPIError(f"{context}: {exc}", response_code=code)


def _attrs(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    return dict(obj.attributes)


class GitLabClient:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._gl = gitlab.Gitlab(
            url=self.settings.gitlab_base_url,
            private_token=self.settings.gitlab_token,
            timeout=self.settings.request_timeout,
            per_page=self.settings.page_size,
            retry_transient_errors=self.settings.retry_transient_errors,
            user_agent=USER_AGENT,
        )

    def _project(self, project_id: int) -> Any:
        # lazy=True builds the manager path without a round-trip.
        return self._gl.projects.get(project_id, lazy=True)

    def get_project(self, project_path: str) -> Project:
        logger.debug("GET project %s", project_path)
        try:
            project = self._gl.projects.get(project_path)
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap(f"failed to get project {project_path}", exc) from exc
        return Project.from_api(_attrs(project))

    def branch_exists(self, project_id: int, branch: str) -> bool:
        logger.debug("GET project %s branch %s", project_id, branch)
        try:
            self._project(project_id).branches.get(branch)
        except gitlab.exceptions.GitlabGetError as exc:
            if exc.response_code == 404:
                return False
            raise _wrap(f"failed to check branch {branch}", exc) from exc
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap(f"failed to check branch {branch}", exc) from exc
        return True

    def compare_branches(self, project_id: int, source_branch: str, target_branch: str) -> Compare:
        # Target is the base, source the head: "what does source add to target".
        logger.debug("GET project %s compare %s...%s", project_id, target_branch, source_branch)
        try:
            payload = self._project(project_id).repository_compare(target_branch, source_branch)
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap("failed to compare branches", exc) from exc
        return Compare.from_api(payload)

    def find_open_merge_requests(
        self,
        project_id: int,
        source_branch: str,
        target_branch: str,
    ) -> list[MergeRequest]:
        logger.debug("GET project %s merge requests %s -> %s", project_id, source_branch, target_branch)
        try:
            mrs = self._project(project_id).mergerequests.list(
                state="opened",
                source_branch=source_branch,
                target_branch=target_branch,
                get_all=True,
            )
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap("failed to find merge requests", exc) from exc
        return [MergeRequest.from_api(_attrs(mr)) for mr in mrs]

    def list_open_merge_requests_by_target(self, project_id: int, target_branch: str) -> list[MergeRequest]:
        logger.debug("GET project %s merge requests -> %s", project_id, target_branch)
        try:
            mrs = self._project(project_id).mergerequests.list(
                state="opened",
                target_branch=target_branch,
                get_all=True,
            )
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap("failed to list merge requests", exc) from exc
        return [MergeRequest.from_api(_attrs(mr)) for mr in mrs]

    def create_merge_request(
        self,
        project_id: int,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
    ) -> MergeRequest:
        logger.debug("POST project %s merge request %s -> %s", project_id, source_branch, target_branch)
        try:
            mr = self._project(project_id).mergerequests.create(
                {
                    "source_branch": source_branch,
                    "target_branch": target_branch,
                    "title": title,
                    "description": description,
                }
            )
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap("failed to create merge request", exc) from exc
        return MergeRequest.from_api(_attrs(mr))

    def accept_merge_request(self, project_id: int, mr_iid: int) -> MergeRequest:
        logger.debug("PUT project %s merge request !%s merge", project_id, mr_iid)
        try:
            mr = self._project(project_id).mergerequests.get(mr_iid, lazy=True)
            payload = mr.merge()
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap("failed to accept merge request", exc) from exc
        return MergeRequest.from_api(_attrs(payload))

    def list_topics(self, page: int = 1, per_page: int = 50) -> list[Topic]:
        logger.debug("GET topics page=%s per_page=%s", page, per_page)
        try:
            topics = self._gl.topics.list(page=page, per_page=per_page)
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap("failed to list topics", exc) from exc
        return [Topic.from_api(_attrs(t)) for t in topics]

    def list_projects_by_topic(self, topic: str, page: int = 1, per_page: int = 50) -> list[Project]:
        logger.debug("GET projects topic=%s page=%s per_page=%s", topic, page, per_page)
        try:
            projects = self._gl.projects.list(topic=topic, page=page, per_page=per_page)
        except (gitlab.exceptions.GitlabError, requests.RequestException) as exc:
            raise _wrap(f"failed to list projects for topic {topic}", exc) from exc
        return [Project.from_api(_attrs(p)) for p in projects]

    def list_all_projects_by_topic(self, topic: str, per_page: int | None = None) -> list[Project]:
        per_page = per_page or self.settings.page_size
        page = 1
        payload: list[Project] = []
        while True:
            projects = self.list_projects_by_topic(topic, page=page, per_page=per_page)
            if not projects:
                break
            payload.extend(projects)
            if len(projects) < per_page:
                break
            page += 1
        return payload
