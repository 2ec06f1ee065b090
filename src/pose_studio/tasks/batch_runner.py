from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn, TimeRemainingColumn
from rich.table import Table

from ..clients.base import GenerationClient
from ..config import AppConfig
from ..errors import PoseStudioError
from ..lifecycle import Failed, GenerationLifecycleController, Succeeded
from ..output import ResultStore
from .submission_plan import SubmissionPlan, SubmissionSpec


@dataclass(slots=True)
class BatchOutcome:
    """Result of one plan entry."""

    name: str
    succeeded: bool
    output_path: Path | None = None
    message: str | None = None


class BatchRunner:
    """Run every entry of a submission plan, one generation at a time."""

    def __init__(
        self,
        config: AppConfig,
        plan: SubmissionPlan,
        batch_name: str,
        client: GenerationClient,
        console: Console | None = None,
    ) -> None:
        self._config = config
        self._plan = plan
        self._console = console or Console()
        self._controller = GenerationLifecycleController(client)
        self._store = ResultStore(config.output.root_dir, batch_name=batch_name)

    @property
    def output_dir(self) -> Path:
        return self._store.base_dir

    def _metadata(self, spec: SubmissionSpec, state: Succeeded) -> dict[str, Any]:
        request = self._controller.last_request
        return {
            "name": spec.name,
            "spec": spec.model_dump(mode="json"),
            "request": request.describe() if request is not None else None,
            "normalizations": [item.note for item in state.normalizations],
        }

    async def _run_one(self, spec: SubmissionSpec) -> BatchOutcome:
        try:
            submission = spec.to_submission()
        except (OSError, RuntimeError, PoseStudioError) as exc:
            return BatchOutcome(name=spec.name, succeeded=False, message=str(exc))

        state = await self._controller.request_generation(submission)
        if isinstance(state, Succeeded):
            metadata = self._metadata(spec, state) if self._config.output.include_metadata else None
            try:
                path = self._store.save(spec.name, state.asset, metadata)
            except OSError as exc:
                return BatchOutcome(name=spec.name, succeeded=False, message=f"Failed to save result: {exc}")
            return BatchOutcome(name=spec.name, succeeded=True, output_path=path)
        if isinstance(state, Failed):
            return BatchOutcome(name=spec.name, succeeded=False, message=state.descriptor.message)
        return BatchOutcome(name=spec.name, succeeded=False, message="Generation did not complete.")

    def _print_summary(self, outcomes: list[BatchOutcome]) -> None:
        table = Table(title="Batch summary")
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Output / error")
        for outcome in outcomes:
            if outcome.succeeded:
                table.add_row(outcome.name, "[green]ok[/green]", str(outcome.output_path))
            else:
                table.add_row(outcome.name, "[red]failed[/red]", outcome.message or "")
        self._console.print(table)

    async def run(self) -> list[BatchOutcome]:
        """Execute the plan sequentially and return one outcome per entry."""
        outcomes: list[BatchOutcome] = []
        specs = list(self._plan)
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold]Gemini[/bold]"),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=self._console,
            transient=True,
        ) as progress:
            task_id = progress.add_task("queued", total=len(specs))
            for spec in specs:
                progress.update(task_id, description=spec.name, advance=0)
                outcomes.append(await self._run_one(spec))
                progress.advance(task_id)

        self._print_summary(outcomes)
        succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
        self._console.print(
            f"[green]{succeeded}/{len(outcomes)} edits saved to[/green] {self._store.base_dir}"
        )
        return outcomes
