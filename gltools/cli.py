from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from rich.markup import escape

from gltools import render
from gltools.bulkmr import BulkMRService, ProjectResult, RunConfig, Summary
from gltools.config import Settings, expand_project_paths, load_dotenv, load_settings
from gltools.gitlab_client import GitLabAPIError, GitLabClient
from gltools.merge import run_merge

VERSION = "1.0.0"

logger = logging.getLogger("gltools")


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--gitlab-url", help="GitLab base URL (default: GITLAB_BASE_URL env)")
    parser.add_argument("--token", help="GitLab API token (default: GITLAB_TOKEN env)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitlab-tools",
        description="CLI toolkit for managing GitLab branches and merge requests",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    bulk_mr = sub.add_parser("bulk-mr", help="Create bulk merge requests across multiple projects")
    bulk_mr.add_argument("--origin", default="", help="Origin (source) branch name (required)")
    bulk_mr.add_argument("--target", default="", help="Target branch name (required)")
    bulk_mr.add_argument("--project", action="append", default=[], help="Project path (can be repeated)")
    bulk_mr.add_argument("--group", help="Default group/namespace prefix for bare project names")
    bulk_mr.add_argument("--format", choices=["text", "json"], default="text")
    _add_connection_args(bulk_mr)

    bulk_mr_topic = sub.add_parser("bulk-mr-topic", help="Create bulk merge requests for all projects in a topic")
    bulk_mr_topic.add_argument("--origin", default="", help="Origin (source) branch name (required)")
    bulk_mr_topic.add_argument("--target", default="", help="Target branch name (required)")
    bulk_mr_topic.add_argument("--topic", default="", help="Topic name (required)")
    bulk_mr_topic.add_argument("--per-page", type=int, default=100, help="Number of projects to fetch per page")
    bulk_mr_topic.add_argument("--format", choices=["text", "json"], default="text")
    _add_connection_args(bulk_mr_topic)

    merge_cmd = sub.add_parser("merge", help="Interactively merge open MRs by target branch and topic")
    merge_cmd.add_argument("--target", default="", help="Target branch to merge into (required)")
    merge_cmd.add_argument("--topic", default="", help="Topic to filter projects (required)")
    _add_connection_args(merge_cmd)

    topics_cmd = sub.add_parser("topics", help="List all GitLab topics")
    topics_cmd.add_argument("--page", type=int, default=1)
    topics_cmd.add_argument("--per-page", type=int, default=50)
    _add_connection_args(topics_cmd)

    projects_cmd = sub.add_parser("projects", help="List all projects for a specific topic")
    projects_cmd.add_argument("--topic", default="", help="Topic name (required)")
    projects_cmd.add_argument("--page", type=int, default=1)
    projects_cmd.add_argument("--per-page", type=int, default=50)
    _add_connection_args(projects_cmd)

    sub.add_parser("version", help="Show version information")
    return parser


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(message)s", datefmt="%H:%M:%S")
        logging.getLogger("urllib3").setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(message)s")


def _log_progress(project_path: str, message: str) -> None:
    logger.info("[%s] %s", project_path, message)


def _require(value: str | None, flag: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{flag} is required")
    return value


def _require_positive(value: int, flag: str) -> int:
    if value < 1:
        raise ValueError(f"{flag} must be >= 1")
    return value


def _settings_from_args(args: argparse.Namespace) -> Settings:
    return load_settings(base_url=args.gitlab_url, token=args.token)


def _run_bulk(
    client: GitLabClient,
    config: RunConfig,
    output_format: str,
) -> int:
    service = BulkMRService(client, config, progress=_log_progress)
    results, summary = service.process_projects()
    _print_run(results, summary, output_format)
    return 1 if summary.failed else 0


def _print_run(results: list[ProjectResult], summary: Summary, output_format: str) -> None:
    if output_format == "json":
        payload: dict[str, Any] = {
            "results": [r.to_dict() for r in results],
            "summary": summary.to_dict(),
        }
        print(json.dumps(payload))
        return

    for result in results:
        render.print_result(result)
    render.console.print()
    render.print_summary(summary)


def _ask(prompt: str) -> str | None:
    try:
        return render.console.input(prompt)
    except EOFError:
        return None


def _dispatch(args: argparse.Namespace) -> int:
    if args.command == "version":
        print(f"gitlab-tools v{VERSION}")
        return 0

    if args.command == "bulk-mr":
        origin = _require(args.origin, "--origin")
        target = _require(args.target, "--target")
        projects = [p.strip() for p in args.project if p.strip()]
        if not projects:
            raise ValueError("at least one --project is required")
        settings = _settings_from_args(args)
        paths = expand_project_paths(projects, args.group)
        config = RunConfig(origin_branch=origin, target_branch=target, projects=tuple(paths), verbose=args.verbose)
        if args.format == "text":
            render.console.print(f"Processing {len(paths)} project(s)...\n")
        return _run_bulk(GitLabClient(settings), config, args.format)

    if args.command == "bulk-mr-topic":
        origin = _require(args.origin, "--origin")
        target = _require(args.target, "--target")
        topic = _require(args.topic, "--topic")
        per_page = _require_positive(args.per_page, "--per-page")
        settings = _settings_from_args(args)
        client = GitLabClient(settings)

        if args.format == "text":
            render.console.print(f"Fetching projects for topic: [bold magenta]{escape(topic)}[/bold magenta]\n")
        try:
            projects = client.list_all_projects_by_topic(topic, per_page=per_page)
        except GitLabAPIError as exc:
            print(f"Error fetching projects: {exc}", file=sys.stderr)
            return 1
        if not projects:
            if args.format == "json":
                _print_run([], Summary(), args.format)
            else:
                render.console.print(f"No projects found for topic: {escape(topic)}")
            return 0

        paths = [p.path_with_namespace for p in projects]
        if args.format == "text":
            render.console.print(f"Found {len(paths)} project(s) in topic [bold magenta]{escape(topic)}[/bold magenta]\n")
        config = RunConfig(origin_branch=origin, target_branch=target, projects=tuple(paths), verbose=args.verbose)
        return _run_bulk(client, config, args.format)

    if args.command == "merge":
        target = _require(args.target, "--target")
        topic = _require(args.topic, "--topic")
        settings = _settings_from_args(args)
        try:
            summary = run_merge(GitLabClient(settings), topic, target, ask=_ask)
        except GitLabAPIError as exc:
            print(f"Failed to fetch projects: {exc}", file=sys.stderr)
            return 1
        render.print_merge_summary(summary.merged, summary.skipped, summary.errors)
        return 1 if summary.errors > 0 else 0

    if args.command == "topics":
        page = _require_positive(args.page, "--page")
        per_page = _require_positive(args.per_page, "--per-page")
        settings = _settings_from_args(args)
        try:
            topics = GitLabClient(settings).list_topics(page=page, per_page=per_page)
        except GitLabAPIError as exc:
            print(f"Error fetching topics: {exc}", file=sys.stderr)
            return 1
        render.print_topics(topics)
        return 0

    if args.command == "projects":
        topic = _require(args.topic, "--topic")
        page = _require_positive(args.page, "--page")
        per_page = _require_positive(args.per_page, "--per-page")
        settings = _settings_from_args(args)
        try:
            projects = GitLabClient(settings).list_projects_by_topic(topic, page=page, per_page=per_page)
        except GitLabAPIError as exc:
            print(f"Error fetching projects: {exc}", file=sys.stderr)
            return 1
        render.print_projects(topic, projects)
        return 0

    return 1


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(getattr(args, "verbose", False))

    try:
        return _dispatch(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
