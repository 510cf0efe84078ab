from __future__ import annotations

import io

from rich.console import Console

from gltools import render
from gltools.bulkmr import ProjectResult, ResultStatus, Summary
from gltools.models import Project, Topic


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=200, soft_wrap=True, highlight=False, emoji=False), buf


def test_print_result_includes_details_and_error() -> None:
    out, buf = _console()

    render.print_result(ProjectResult(project="g/a", status=ResultStatus.CREATED, details="MR !4: https://x/4"), out)
    render.print_result(
        ProjectResult(project="g/b", status=ResultStatus.ERROR, error_message="failed to compare branches: 500"),
        out,
    )
    text = buf.getvalue()

    assert text.splitlines()[:2] == ["[g/a] ✓ CREATED", "  MR !4: https://x/4"]
    assert "[g/b] ✗ ERROR" in text
    assert "  Error: failed to compare branches: 500" in text


def test_user_text_with_brackets_is_not_treated_as_markup() -> None:
    out, buf = _console()

    render.print_result(
        ProjectResult(project="g/a", status=ResultStatus.SKIPPED_DRAFT, details="Draft MR exists: !2 ([bold]x[/bold])"),
        out,
    )

    assert "Draft MR exists: !2 ([bold]x[/bold])" in buf.getvalue()


def test_every_status_has_an_icon() -> None:
    assert all(render.status_icon(status) != "?" for status in ResultStatus)
    assert render.status_icon(None) == "?"


def test_print_summary_reports_outcome() -> None:
    out, buf = _console()
    render.print_summary(Summary(total=2, created=1, skipped_draft=1), out)
    ok = buf.getvalue()

    out, buf = _console()
    render.print_summary(Summary(total=1, errors=1), out)
    bad = buf.getvalue()

    assert "  Skipped (draft): 1" in ok
    assert ok.rstrip().endswith("✓ Completed successfully")
    assert bad.rstrip().endswith("✗ Completed with errors")


def test_topic_description_is_truncated() -> None:
    out, buf = _console()

    render.print_topics([Topic(id=1, name="backend", title="Backend", description="x" * 100)], out)

    assert "x" * 77 + "..." in buf.getvalue()
    assert "x" * 78 not in buf.getvalue()


def test_no_escape_codes_when_not_a_terminal() -> None:
    out, buf = _console()

    render.print_projects(
        "backend",
        [Project(id=1, name="repo-a", path_with_namespace="g/repo-a", web_url="https://x/g/repo-a", topics=["go"])],
        out,
    )
    text = buf.getvalue()

    assert "\033[" not in text
    assert "Projects in topic: backend" in text
    assert " go " in text


def test_empty_listings() -> None:
    out, buf = _console()
    render.print_topics([], out)
    render.print_projects("backend", [], out)

    assert "No topics found." in buf.getvalue()
    assert "No projects found for this topic." in buf.getvalue()
