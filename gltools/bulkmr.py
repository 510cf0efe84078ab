from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from gltools.models import Compare, MergeRequest, Project

ProgressCallback = Callable[[str, str], None]


class GitLabGateway(Protocol):
    def get_project(self, project_path: str) -> Project: ...

    def branch_exists(self, project_id: int, branch: str) -> bool: ...

    def compare_branches(self, project_id: int, source_branch: str, target_branch: str) -> Compare: ...

    def find_open_merge_requests(
        self, project_id: int, source_branch: str, target_branch: str
    ) -> list[MergeRequest]: ...

    def create_merge_request(
        self,
        project_id: int,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
    ) -> MergeRequest: ...


class ResultStatus(str, Enum):
    CREATED = "CREATED"
    SKIPPED_EXISTS = "SKIPPED_EXISTS"
    SKIPPED_DRAFT = "SKIPPED_DRAFT"
    SKIPPED_NO_BRANCH = "SKIPPED_NO_BRANCH"
    SKIPPED_NO_CHANGE = "SKIPPED_NO_CHANGE"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RunConfig:
    origin_branch: str
    target_branch: str
    projects: tuple[str, ...] = field(default_factory=tuple)
    verbose: bool = False


@dataclass
class ProjectResult:
    project: str
    status: ResultStatus | None = None
    merge_request_id: int = 0
    merge_request_iid: int = 0
    merge_request_url: str = ""
    details: str = ""
    error_message: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value if self.status else None
        return payload


@dataclass
class Summary:
    total: int = 0
    created: int = 0
    skipped_exists: int = 0
    skipped_draft: int = 0
    skipped_branch: int = 0
    skipped_no_change: int = 0
    errors: int = 0

    @classmethod
    def from_results(cls, results: list[ProjectResult]) -> Summary:
        summary = cls(total=len(results))
        for result in results:
            if result.status is ResultStatus.CREATED:
                summary.created += 1
            elif result.status is ResultStatus.SKIPPED_EXISTS:
                summary.skipped_exists += 1
            elif result.status is ResultStatus.SKIPPED_DRAFT:
                summary.skipped_draft += 1
            elif result.status is ResultStatus.SKIPPED_NO_BRANCH:
                summary.skipped_branch += 1
            elif result.status is ResultStatus.SKIPPED_NO_CHANGE:
                summary.skipped_no_change += 1
            elif result.status is ResultStatus.ERROR:
                summary.errors += 1
        return summary

    @property
    def failed(self) -> bool:
        return self.errors > 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def merge_request_title(origin_branch: str, target_branch: str) -> str:
    return f"Merge {origin_branch} into {target_branch}"


def merge_request_description(origin_branch: str, target_branch: str) -> str:
    return (
        "This merge request was created automatically by gitlab-tools.\n\n"
        f"**Source Branch**: `{origin_branch}`\n"
        f"**Target Branch**: `{target_branch}`"
    )


def _fail(result: ProjectResult, message: str) -> ProjectResult:
    result.status = ResultStatus.ERROR
    result.error_message = message
    return result


def _reference(result: ProjectResult, status: ResultStatus, mr: MergeRequest, details: str) -> ProjectResult:
    result.status = status
    result.merge_request_id = mr.id
    result.merge_request_iid = mr.iid
    result.merge_request_url = mr.web_url
    result.details = details
    return result


class BulkMRService:
    """Creates one merge request per project from ``origin_branch`` into ``target_branch``.

    Projects are processed sequentially in the configured order. A failure for one
    project becomes an ``ERROR`` result for that project and never stops the run.
    Re-running is safe: any open merge request for the same branch pair, draft or
    not, prevents a new one from being created.
    """

    def __init__(
        self,
        client: GitLabGateway,
        config: RunConfig,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.progress = progress

    def _report(self, project_path: str, message: str) -> None:
        if self.config.verbose and self.progress is not None:
            self.progress(project_path, message)

    def process_projects(self) -> tuple[list[ProjectResult], Summary]:
        results = [self.process_project(path) for path in self.config.projects]
        return results, Summary.from_results(results)

    def process_project(self, project_path: str) -> ProjectResult:
        origin = self.config.origin_branch
        target = self.config.target_branch
        result = ProjectResult(project=project_path)

        try:
            project = self.client.get_project(project_path)
        except Exception as exc:
            return _fail(result, str(exc))

        self._report(project_path, "Checking branches...")

        try:
            origin_exists = self.client.branch_exists(project.id, origin)
        except Exception as exc:
            return _fail(result, f"failed to check origin branch: {exc}")
        if not origin_exists:
            result.status = ResultStatus.SKIPPED_NO_BRANCH
            result.details = f"Origin branch '{origin}' does not exist"
            return result

        try:
            target_exists = self.client.branch_exists(project.id, target)
        except Exception as exc:
            return _fail(result, f"failed to check target branch: {exc}")
        if not target_exists:
            result.status = ResultStatus.SKIPPED_NO_BRANCH
            result.details = f"Target branch '{target}' does not exist"
            return result

        self._report(project_path, "Checking existing merge requests...")

        try:
            existing = self.client.find_open_merge_requests(project.id, origin, target)
        except Exception as exc:
            return _fail(result, f"failed to find existing merge requests: {exc}")

        if existing:
            for mr in existing:
                if not mr.is_draft:
                    return _reference(result, ResultStatus.SKIPPED_EXISTS, mr, f"Open MR already exists: !{mr.iid}")
            # Only drafts are open; the last one scanned is reported.
            draft_mr = existing[-1]
            return _reference(
                result,
                ResultStatus.SKIPPED_DRAFT,
                draft_mr,
                f"Draft MR exists: !{draft_mr.iid} ({draft_mr.title})",
            )

        self._report(project_path, "Comparing branches...")

        try:
            compare = self.client.compare_branches(project.id, origin, target)
        except Exception as exc:
            return _fail(result, f"failed to compare branches: {exc}")

        if not compare.has_changes:
            result.status = ResultStatus.SKIPPED_NO_CHANGE
            result.details = f"No changes between {origin} and {target}"
            return result

        self._report(
            project_path,
            f"Found {len(compare.commits)} commit(s) with changes, creating merge request...",
        )

        try:
            mr = self.client.create_merge_request(
                project.id,
                origin,
                target,
                merge_request_title(origin, target),
                merge_request_description(origin, target),
            )
        except Exception as exc:
            return _fail(result, f"failed to create merge request: {exc}")

        return _reference(result, ResultStatus.CREATED, mr, f"MR !{mr.iid}: {mr.web_url}")
