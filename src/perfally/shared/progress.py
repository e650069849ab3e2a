"""Rich progress display for multi-page audits."""

from __future__ import annotations

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

console = Console()


class AuditProgress:
    """One spinner line per audited page."""

    def __init__(self) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_ids: dict[str, int] = {}

    def __enter__(self) -> "AuditProgress":
        self._progress.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        self._progress.__exit__(*args)

    def start_page(self, url: str) -> None:
        tid = self._progress.add_task(f"[cyan]{url}[/] auditing…", total=None)
        self._task_ids[url] = tid

    def finish_page(self, url: str, summary: str) -> None:
        if url in self._task_ids:
            self._progress.update(
                self._task_ids[url],
                description=f"[green]✓ {url}[/] {summary}",
                completed=True,
            )

    def fail_page(self, url: str, error: str) -> None:
        if url in self._task_ids:
            self._progress.update(
                self._task_ids[url],
                description=f"[red]✗ {url}: {error}[/]",
                completed=True,
            )
