from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from rich.console import Console

from gltools import render
from gltools.models import MergeRequest, Project


class MergeGateway(Protocol):
    def list_all_projects_by_topic(self, topic: str, per_page: int | None = None) -> list[Project]: ...

    def list_open_merge_requests_by_target(self, project_id: int, target_branch: str) -> list[MergeRequest]: ...

    def accept_merge_request(self, project_id: int, mr_iid: int) -> MergeRequest: ...


@dataclass
class MergeSummary:
    merged: int = 0
    skipped: int = 0
    errors: int = 0


def _confirmed(answer: str) -> bool:
    return answer.strip().lower() in {"y", "yes"}


def run_merge(
    client: MergeGateway,
    topic: str,
    target_branch: str,
    *,
    ask: Callable[[str], str | None],
    out: Console = render.console,
) -> MergeSummary:
    """Walk every non-draft open MR into ``target_branch`` across a topic and ask before merging.

    ``ask`` shows a prompt and returns the answer, or None once input is exhausted.
    A None answer ends prompting for the current project only; the remaining projects
    are still listed so their failures are counted. Failures listing or merging never
    abort the loop.
    """
    summary = MergeSummary()

    render.print_merge_fetching(topic, out)
    projects = client.list_all_projects_by_topic(topic)
    if not projects:
        render.print_merge_no_projects(topic, out)
        return summary
    render.print_merge_found(len(projects), out)

    for project in projects:
        try:
            mrs = client.list_open_merge_requests_by_target(project.id, target_branch)
        except Exception as exc:
            render.print_merge_list_error(project.path_with_namespace, exc, out)
            summary.errors += 1
            continue

        for mr in (m for m in mrs if not m.is_draft):
            render.print_merge_candidate(project, mr, out)
            answer = ask(render.MERGE_QUESTION)
            if answer is None:
                break
            if not _confirmed(answer):
                render.print_merge_skipped(out)
                summary.skipped += 1
                continue
            try:
                client.accept_merge_request(project.id, mr.iid)
            except Exception as exc:
                render.print_merge_failed(exc, out)
                summary.errors += 1
            else:
                render.print_merge_succeeded(out)
                summary.merged += 1

    return summary
