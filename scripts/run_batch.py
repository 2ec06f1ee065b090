from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from rich.console import Console

from pose_studio.clients.gemini import GeminiImageClient
from pose_studio.config import load_config
from pose_studio.log_config import configure_logging
from pose_studio.tasks.batch_runner import BatchRunner
from pose_studio.tasks.submission_plan import load_submission_plan


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a plan of pose, clothing and background edits against the Gemini image model."
    )
    parser.add_argument(
        "plan_file",
        type=Path,
        help="Path to the JSON submission plan.",
    )
    parser.add_argument(
        "--batch-name",
        type=str,
        default=None,
        help="Optional override for the batch name (defaults to plan file stem).",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file containing the Gemini API key.",
    )
    return parser.parse_args()


async def _run(runner_args: argparse.Namespace, console: Console) -> int:
    config = load_config(runner_args.dotenv)
    configure_logging(config.log_level, console)
    plan = load_submission_plan(runner_args.plan_file)

    batch_name = runner_args.batch_name or runner_args.plan_file.stem
    async with GeminiImageClient(config.gemini) as client:
        runner = BatchRunner(config=config, plan=plan, batch_name=batch_name, client=client, console=console)
        outcomes = await runner.run()
    return 0 if all(outcome.succeeded for outcome in outcomes) else 1


def main() -> None:
    args = parse_args()
    console = Console()

    if not args.plan_file.exists():
        console.print(f"[red]Plan file not found:[/red] {args.plan_file}")
        raise SystemExit(1)

    try:
        exit_code = asyncio.run(_run(args, console))
    except RuntimeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
