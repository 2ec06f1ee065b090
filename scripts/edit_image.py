from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm

from pose_studio.clients.gemini import GeminiImageClient
from pose_studio.config import AppConfig, load_config
from pose_studio.errors import PoseStudioError
from pose_studio.lifecycle import (
    Failed,
    GenerationLifecycleController,
    LifecycleState,
    Pending,
    Succeeded,
)
from pose_studio.log_config import configure_logging
from pose_studio.output import ResultStore
from pose_studio.sample import SampleImageLoader
from pose_studio.session import EditingSession
from pose_studio.tasks.submission_plan import read_image_file


def _as_path(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.exists():
        raise argparse.ArgumentTypeError(f"Path not found: {path}")
    return path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Change the pose, clothing or background of a person in a photo."
    )
    parser.add_argument(
        "--source",
        type=_as_path,
        default=None,
        help="Photo to edit. Defaults to the configured sample image (SAMPLE_IMAGE_URL).",
    )
    parser.add_argument("--pose", default="", help="Describe the new pose.")
    parser.add_argument("--clothing", default="", help="Describe the new clothing and style.")
    parser.add_argument("--clothing-image", type=_as_path, default=None, help="Clothing reference image.")
    parser.add_argument("--background", default="", help="Describe the new background.")
    parser.add_argument("--background-image", type=_as_path, default=None, help="Background reference image.")
    parser.add_argument(
        "--no-preserve-body-shape",
        action="store_true",
        help="Allow the model to change the person's body shape.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=(
            "Where to write the result (defaults to OUTPUT_ROOT_DIR/<source stem>-edited). "
            "The extension follows the image type the model returns."
        ),
    )
    parser.add_argument("--dotenv", type=Path, default=None, help="Optional .env file with credentials.")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL.")
    return parser.parse_args()


def _render(console: Console, state: LifecycleState) -> None:
    if isinstance(state, Pending):
        console.print("[cyan]Generating... this may take a moment.[/cyan]")
    elif isinstance(state, Failed):
        console.print(f"[red]Generation failed:[/red] {state.descriptor.message}")
    elif isinstance(state, Succeeded):
        for normalization in state.normalizations:
            console.print(f"[yellow]{normalization.note}[/yellow]")


def _populate(session: EditingSession, args: argparse.Namespace) -> None:
    if args.source is not None:
        source = read_image_file(args.source, "Source image")
        session.upload_source(source.payload, source.media_type)
    session.set_pose(args.pose)
    session.set_clothing(args.clothing)
    session.set_background(args.background)
    session.set_preserve_body_shape(not args.no_preserve_body_shape)
    if args.clothing_image is not None:
        clothing = read_image_file(args.clothing_image, "Clothing reference")
        session.set_clothing_image(clothing.payload, clothing.media_type)
    if args.background_image is not None:
        background = read_image_file(args.background_image, "Background reference")
        session.set_background_image(background.payload, background.media_type)


def _output_path(config: AppConfig, args: argparse.Namespace, state: Succeeded) -> Path:
    if args.output is not None:
        return args.output
    stem = args.source.stem if args.source is not None else "sample"
    return ResultStore(config.output.root_dir).path_for(f"{stem}-edited", state.asset)


async def _run(args: argparse.Namespace, console: Console) -> int:
    config = load_config(args.dotenv)
    configure_logging(args.log_level or config.log_level, console)

    async with GeminiImageClient(config.gemini) as client:
        controller = GenerationLifecycleController(client)
        session = EditingSession(controller, sample_loader=SampleImageLoader(config.sample))
        session.subscribe(lambda state: _render(console, state))

        if args.source is None and not await session.load_sample():
            console.print(f"[yellow]{session.notice or 'No sample image is configured.'}[/yellow]")
        _populate(session, args)

        state = await session.generate()
        while isinstance(state, Failed) and Confirm.ask("Retry?", console=console, default=False):
            state = await session.retry()

    if not isinstance(state, Succeeded):
        return 1

    output_path = _output_path(config, args, state)
    store = ResultStore(output_path.parent)
    saved = store.save(output_path.stem, state.asset)
    console.print(f"[green]✓ Output saved to[/green] {saved}")
    return 0


def main() -> None:
    args = parse_args()
    console = Console()
    try:
        exit_code = asyncio.run(_run(args, console))
    except (RuntimeError, PoseStudioError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
