from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule

from gltools.bulkmr import ProjectResult, ResultStatus, Summary
from gltools.models import MergeRequest, Project, Topic

# Colour is dropped automatically when stdout is not a terminal.
console = Console(soft_wrap=True, highlight=False, emoji=False)

MERGE_QUESTION = "[bold yellow]Merge this MR? (y/n): [/bold yellow]"
DESCRIPTION_LIMIT = 80

STATUS_ICONS = {
    ResultStatus.CREATED: "✓",
    ResultStatus.SKIPPED_EXISTS: "→",
    ResultStatus.SKIPPED_DRAFT: "⊘",
    ResultStatus.SKIPPED_NO_BRANCH: "⚠",
    ResultStatus.SKIPPED_NO_CHANGE: "≡",
    ResultStatus.ERROR: "✗",
}

STATUS_STYLES = {
    ResultStatus.CREATED: "green",
    ResultStatus.SKIPPED_EXISTS: "cyan",
    ResultStatus.SKIPPED_DRAFT: "yellow",
    ResultStatus.SKIPPED_NO_BRANCH: "yellow",
    ResultStatus.SKIPPED_NO_CHANGE: "dim",
    ResultStatus.ERROR: "bold red",
}


def status_icon(status: ResultStatus | None) -> str:
    return STATUS_ICONS.get(status, "?") if status is not None else "?"


def truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def print_result(result: ProjectResult, out: Console = console) -> None:
    status = result.status.value if result.status is not None else "UNKNOWN"
    style = STATUS_STYLES.get(result.status, "") if result.status is not None else ""
    line = f"{status_icon(result.status)} {status}"
    if style:
        line = f"[{style}]{line}[/{style}]"
    out.print(f"{escape(f'[{result.project}]')} {line}")
    if result.details:
        out.print(f"  {escape(result.details)}")
    if result.error_message:
        out.print(f"  [red]Error: {escape(result.error_message)}[/red]")
    out.print()


def print_summary(summary: Summary, out: Console = console) -> None:
    out.print("[bold]Summary:[/bold]")
    out.print(f"  Total projects: {summary.total}")
    out.print(f"  Created: {summary.created}")
    out.print(f"  Skipped (exists): {summary.skipped_exists}")
    out.print(f"  Skipped (draft): {summary.skipped_draft}")
    out.print(f"  Skipped (no changes): {summary.skipped_no_change}")
    out.print(f"  Skipped (no branch): {summary.skipped_branch}")
    out.print(f"  Errors: {summary.errors}")
    out.print()
    if summary.failed:
        out.print("[bold red]✗ Completed with errors[/bold red]")
    else:
        out.print("[bold green]✓ Completed successfully[/bold green]")


def print_topics(topics: list[Topic], out: Console = console) -> None:
    out.print()
    out.print("📚 [bold magenta]GitLab Topics[/bold magenta]")
    out.print()
    if not topics:
        out.print("[dim]No topics found.[/dim]")
        return

    for idx, topic in enumerate(topics, start=1):
        header = f"[bold]{idx}.[/bold] [bold magenta]{escape(topic.name)}[/bold magenta]"
        if topic.title and topic.title != topic.name:
            header += f" - {escape(topic.title)}"
        out.print(header)
        if topic.total_projects_count > 0:
            out.print(f"   [magenta]📦 {topic.total_projects_count} projects[/magenta]")
        if topic.description and topic.description != topic.title:
            out.print(f"   [dim]{escape(truncate(topic.description))}[/dim]")
        out.print()


def print_projects(topic_name: str, projects: list[Project], out: Console = console) -> None:
    out.print()
    out.print(f"📁 [bold magenta]Projects in topic: {escape(topic_name)}[/bold magenta]")
    out.print()
    if not projects:
        out.print("[dim]No projects found for this topic.[/dim]")
        return

    for idx, project in enumerate(projects, start=1):
        out.print(f"[bold]{idx}.[/bold] [bold]{escape(project.name)}[/bold]")
        out.print(f"   [dim]{escape(project.path_with_namespace)}[/dim]")
        if project.description:
            out.print(f"   [italic dim]{escape(truncate(project.description))}[/italic dim]")
        other_topics = [t for t in project.topics if t != topic_name]
        if other_topics:
            badges = " ".join(f"[white on magenta] {escape(t)} [/white on magenta]" for t in other_topics)
            out.print(f"   {badges}")
        out.print(f"   [underline green]{escape(project.web_url)}[/underline green]")
        out.print()


def print_merge_fetching(topic: str, out: Console = console) -> None:
    out.print(f"[cyan]📦 Fetching projects for topic: {escape(topic)}[/cyan]")


def print_merge_no_projects(topic: str, out: Console = console) -> None:
    out.print(f"[yellow]⚠️  No projects found for topic: {escape(topic)}[/yellow]")


def print_merge_found(count: int, out: Console = console) -> None:
    out.print(f"[green]✓ Found {count} projects[/green]")
    out.print()


def print_merge_list_error(project_path: str, exc: Exception, out: Console = console) -> None:
    out.print(f"[red]✗ Error fetching MRs for {escape(project_path)}: {escape(str(exc))}[/red]")


def print_merge_candidate(project: Project, mr: MergeRequest, out: Console = console) -> None:
    body = "\n".join(
        [
            f"[bold cyan]Project:[/bold cyan] {escape(project.path_with_namespace)}",
            f"[bold cyan]MR Title:[/bold cyan] {escape(mr.title)}",
            f"[bold cyan]Branches:[/bold cyan] {escape(mr.source_branch)} → {escape(mr.target_branch)}",
            f"[bold cyan]URL:[/bold cyan] {escape(mr.web_url)}",
        ]
    )
    out.print(Panel.fit(body, border_style="cyan"))


def print_merge_skipped(out: Console = console) -> None:
    out.print("[yellow]⊘ Skipped[/yellow]")
    out.print()


def print_merge_failed(exc: Exception, out: Console = console) -> None:
    out.print(f"[red]✗ Failed to merge: {escape(str(exc))}[/red]")
    out.print()


def print_merge_succeeded(out: Console = console) -> None:
    out.print("[green]✓ Successfully merged![/green]")
    out.print()


def print_merge_summary(merged: int, skipped: int, errors: int, out: Console = console) -> None:
    out.print(Rule("📊 Summary", style="cyan"))
    out.print(f"[green]✓ Merged:  {merged}[/green]")
    out.print(f"[yellow]⊘ Skipped: {skipped}[/yellow]")
    if errors > 0:
        out.print(f"[red]✗ Errors:  {errors}[/red]")
    out.print(Rule(style="cyan"))
