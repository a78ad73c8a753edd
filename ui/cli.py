"""Command Line Interface (CLI) output helpers."""

from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from utils.logger import get_logger
from core.aggregation import CourseScore
from core.deadlines import DeadlineWindow, SubmissionTiming
from core.grader import LabGradeResult
from core.repo_rubric import RepoScoreResult
from core.similarity import SimilarityResult, violation_severity

logger = get_logger()
console = Console()

_CRITERION_CAPS = {
    "repo_exists": 10,
    "readme_present": 10,
    "readme_quality": 10,
    "relevant_files": 20,
    "code_quality": 20,
    "file_structure": 15,
    "dependencies": 15,
}

_TIMING_STYLES = {
    SubmissionTiming.ON_TIME: "green",
    SubmissionTiming.LATE: "yellow",
    SubmissionTiming.CLOSED: "bold red",
}


def display_error(message: str):
    """Displays an error message in a standard format."""
    console.print(Panel(f"[bold red]Error:[/bold red] {message}", title="Error", border_style="red"))


def display_warning(message: str):
    console.print(f"[yellow]Warning:[/yellow] {message}")


def _score_style(value: float, cap: float) -> str:
    ratio = value / cap if cap else 0
    if ratio >= 0.7:
        return "green"
    if ratio >= 0.4:
        return "yellow"
    return "red"


def display_repo_score(result: RepoScoreResult, url: Optional[str] = None):
    """Displays the rubric breakdown of a repository score.

    Args:
        result: Result returned by ``score_repository``.
        url: Repository URL, used as the table title when given.
    """
    table = Table(title=url or "Repository Score", show_header=True, header_style="bold magenta")
    table.add_column("Criterion", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Notes", style="dim")

    for name, value in result.breakdown.as_dict().items():
        cap = _CRITERION_CAPS[name]
        notes = "; ".join(result.details.get(name, []))
        table.add_row(
            name.replace("_", " ").capitalize(),
            Text(f"{value}/{cap}", style=_score_style(value, cap)),
            notes,
        )
    table.add_row(Text("Total", style="bold"), Text(f"{result.score}/100", style="bold " + _score_style(result.score, 100)), "")
    console.print(table)
    console.print(result.feedback)
    for error in result.errors:
        display_warning(error)


def display_similarity(result: SimilarityResult):
    style = "bold red" if result.flagged else "green"
    console.print(f"Similarity score: [{style}]{result.score:g}%[/{style}]")
    console.print(f"  Whole document: {result.document_similarity:g}%  Best block: {result.max_block_similarity:g}%")
    if result.flagged:
        console.print(f"  Severity: [bold]{violation_severity(result.score)}[/bold]")
        if result.matched_source_ids:
            console.print(f"  Matched submissions: {', '.join(result.matched_source_ids)}")
    else:
        console.print("  [dim]Below the review threshold.[/dim]")


def display_deadline_window(window: DeadlineWindow, at: Optional[datetime] = None):
    """Displays a deadline window and, when ``at`` is given, how a submission at that instant is treated."""
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Available", window.available_at.isoformat())
    table.add_row("Deadline", window.deadline.isoformat() if window.deadline else "none")
    table.add_row("Grace until", window.grace_deadline.isoformat() if window.grace_deadline else "none")
    console.print(Panel(table, title="Deadline Window", border_style="blue"))

    if at is not None:
        timing = window.classify(at)
        style = _TIMING_STYLES[timing]
        console.print(f"Submission at {at.isoformat()}: [{style}]{timing.value}[/{style}]")
        remaining = window.time_remaining(at)
        if remaining:
            console.print(f"Time remaining until next boundary: {remaining}")


def display_course_score(result: CourseScore):
    style = "green" if result.is_passing else "red"
    status = "PASSING" if result.is_passing else "NOT PASSING"
    console.print(f"Exam mean: {result.exam_mean:.2f}")
    console.print(f"Overall course score: [bold]{result.overall_score:.2f}[/bold] [{style}]{status}[/{style}]")


def display_lab_grade(result: LabGradeResult):
    if result.cheat_flagged:
        title, border = "Integrity Warning", "red"
    elif result.scaled_grade >= 70:
        title, border = "Great Job!", "green"
    else:
        title, border = "Needs Improvement", "yellow"
    body = f"[bold]Grade:[/bold] {result.scaled_grade:g} (base {result.base_score:g}, {result.mode})\n\n{result.feedback}"
    console.print(Panel(body, title=title, border_style=border))
