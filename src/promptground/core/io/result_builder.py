"""Optimization result summaries."""

from typing import List, Optional, Sequence

from loguru import logger
from rich.console import Console
from rich.table import Table

from ...models import OptimizationRun, PromptCandidate

PROMPT_PREVIEW_LENGTH = 80


class ResultBuilder:
    """Build and print optimization run summaries."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize result builder."""
        self.console = console or Console()

    def log_result(self, run: OptimizationRun, collection: Sequence[PromptCandidate] = ()) -> None:
        """Log optimization result."""
        if run.status == "completed":
            logger.success(f"Run {run.id} complete, best score {run.best_score:.2f}")
        else:
            logger.error(f"Run {run.id} ended with status {run.status}: {run.error or 'unknown error'}")
        self.print_run(run, collection)

    def print_run(self, run: OptimizationRun, collection: Sequence[PromptCandidate] = ()) -> None:
        """Print a run header, its rollout history and the final collection."""
        self.console.print("\n[bold green]+----------------------------------------------+[/bold green]")
        self.console.print("[bold green]|       GEPA Optimization Results              |[/bold green]")
        self.console.print("[bold green]+----------------------------------------------+[/bold green]\n")

        self.console.print(f"Run ID: [cyan]{run.id}[/cyan]")
        self.console.print(f"Started: [cyan]{run.timestamp}[/cyan]")
        self.console.print(f"Status: [cyan]{run.status}[/cyan]")
        if run.error:
            self.console.print(f"Error: [red]{run.error}[/red]")
        self.console.print(
            f"Models: [cyan]{run.config.optimization_model}[/cyan] / "
            f"[cyan]{run.config.reflection_model}[/cyan]"
        )
        self.console.print(f"Best score: [cyan]{run.best_score:.2f}[/cyan]")
        self.console.print(f"Collection size: [cyan]{run.collection_size}[/cyan]")
        self.console.print(f"Samples used: [cyan]{len(run.samples_used)}[/cyan]\n")

        self.console.print(self.history_table(run))

        if collection:
            self.console.print(f"\n[bold]Pareto Collection ({len(collection)} candidates):[/bold]")
            self.console.print(self.collection_table(collection, run.config.selected_metrics))

        self.console.print("\n[bold]Final Prompt:[/bold]")
        self.console.print(run.final_prompt)
        self.console.print()

    def history_table(self, run: OptimizationRun) -> Table:
        table = Table(title="Rollouts")
        table.add_column("Iter", justify="right")
        table.add_column("Score", justify="right")
        table.add_column("Accepted")
        table.add_column("Candidate")
        table.add_column("Prompt")
        for entry in run.prompts:
            table.add_row(
                str(entry.iteration),
                f"{entry.score:.2f}",
                "[green]yes[/green]" if entry.accepted else "[red]no[/red]",
                entry.candidate_id or "-",
                self._preview(entry.prompt),
            )
        return table

    def collection_table(self, collection: Sequence[PromptCandidate], metric_names: List[str]) -> Table:
        best_id = max(collection, key=lambda c: c.overall_score).id
        table = Table()
        table.add_column("")
        table.add_column("Candidate")
        table.add_column("Overall", justify="right")
        for name in metric_names:
            table.add_column(name, justify="right")
        for candidate in collection:
            table.add_row(
                "*" if candidate.id == best_id else "",
                candidate.id,
                f"{candidate.overall_score:.2f}",
                *(f"{candidate.metrics.get(name, 0.0):.2f}" for name in metric_names),
            )
        return table

    def list_table(self, runs: Sequence[OptimizationRun]) -> Table:
        """One row per run, newest first as given."""
        table = Table(title="Optimization Runs")
        table.add_column("Run ID", style="cyan")
        table.add_column("Started")
        table.add_column("Status")
        table.add_column("Rollouts", justify="right")
        table.add_column("Best", justify="right")
        for run in runs:
            table.add_row(
                run.id,
                run.timestamp,
                run.status,
                str(max(run.last_iteration, 0)),
                f"{run.best_score:.2f}",
            )
        return table

    def _preview(self, text: str) -> str:
        flat = " ".join(text.split())
        if len(flat) <= PROMPT_PREVIEW_LENGTH:
            return flat
        return flat[:PROMPT_PREVIEW_LENGTH] + "..."
