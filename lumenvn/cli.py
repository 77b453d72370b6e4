from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .engine.adapters.assets import FileSystemAssets
from .engine.adapters.audio import NullAudio
from .engine.adapters.storage import FileKeyValueStore
from .engine.config_io import load_config
from .engine.engine import Engine, InputSignal
from .engine.events import ErrorEvent, TextShowEvent
from .engine.renderer import HeadlessSurface
from .script.errors import ScriptError
from .script.model import AudioPlay, Dialogue
from .script.repository import FileScriptRepository

logger = logging.getLogger(__name__)

# upper bound on progress signals in a headless run
MAX_HEADLESS_STEPS = 100_000


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="lumenvn", description="LumenVN visual novel player")
    sub = parser.add_subparsers(dest="cmd")

    # run subcommand (default behavior)
    p_run = sub.add_parser("run", help="Play a content directory")
    p_run.add_argument("content", type=str, help="Directory holding scenes.json and the scene files")
    p_run.add_argument("--pygame", action="store_true", help="Open a window (interactive)")
    p_run.add_argument("--save-dir", type=str, default=None, help="Where slots and preferences are stored")
    p_run.add_argument("--config", type=str, default=None, help="config.json to use instead of <content>/config.json")
    p_run.add_argument("--log-level", type=str, default="WARNING", help="Logging level (DEBUG, INFO, ...)")
    p_run.add_argument("--font", type=str, default=None, help="Path to a TTF/OTF font able to draw the script text")
    p_run.add_argument("--font-size", type=int, default=28, help="Font size for text")

    p_check = sub.add_parser("check", help="Validate the scene index and every scene file")
    p_check.add_argument("content", type=str, help="Directory holding scenes.json and the scene files")
    p_check.add_argument("--log-level", type=str, default="WARNING", help="Logging level")

    # Back-compat: without a subcommand, treat as 'run'
    argv_list = list(argv) if argv is not None else sys.argv[1:]
    if not argv_list or argv_list[0] not in {"run", "check"}:
        args = p_run.parse_args(argv_list)
        args.cmd = "run"  # type: ignore[attr-defined]
    else:
        args = parser.parse_args(argv_list)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    content = Path(args.content)
    if not content.is_dir():
        print(f"Content directory not found: {content}")
        return 2

    if args.cmd == "check":
        return _cmd_check(content)
    return _cmd_run(args, content)


def _cmd_run(args: argparse.Namespace, content: Path) -> int:
    config = load_config(Path(args.config) if args.config else content)
    repo = FileScriptRepository(content)
    store = FileKeyValueStore(Path(args.save_dir) if args.save_dir else content / "saves")

    if args.pygame:
        return _run_window(args, content, config, repo, store)

    engine = Engine(repo, surface=HeadlessSurface(), store=store, config=config,
                    assets=FileSystemAssets(content), audio=NullAudio())
    engine.events.subscribe(TextShowEvent, lambda e: print(e.text))
    engine.events.subscribe(ErrorEvent, lambda e: print(f"[{e.kind}] {e.message}", file=sys.stderr))
    if not engine.handle(InputSignal.START):
        print("No playable content.")
        return 1
    # For headless runs, advance through every line as fast as virtual time allows
    steps = 0
    while not engine.playback.is_idle and steps < MAX_HEADLESS_STEPS:
        engine.scheduler.run_until_idle()
        if engine.playback.is_idle:
            break
        engine.handle(InputSignal.PROGRESS)
        steps += 1
    return 0


def _run_window(args: argparse.Namespace, content: Path, config, repo, store) -> int:
    # local imports keep pygame out of headless runs and tests
    import pygame

    from .engine.adapters.assets import PygameAssets
    from .engine.adapters.audio import PygameAudio
    from .engine.font_utils import init_font
    from .engine.renderer_pygame import LOGICAL_SIZE, PygameSurface, run_pygame

    pygame.init()
    try:
        pygame.display.set_mode(LOGICAL_SIZE, pygame.RESIZABLE)
        font = init_font(args.font, args.font_size, content)
        hint_font = init_font(args.font, max(14, int(args.font_size * 0.6)), content)
        assets = PygameAssets(content)
        engine: Optional[Engine] = None
        surface = PygameSurface(image_for=lambda p: engine.playback.images.load(p), font=font, hint_font=hint_font)
        engine = Engine(repo, surface=surface, store=store, config=config,
                        assets=assets, audio=PygameAudio(assets.resolve))
        run_pygame(engine, surface, title=content.name or "LumenVN")
    finally:
        pygame.quit()
    return 0


def check_content(content: Path) -> Tuple[List[str], List[str], int]:
    """Validate ``content``. Returns (errors, warnings, scene count)."""
    errors: List[str] = []
    warnings: List[str] = []
    repo = FileScriptRepository(content)
    assets = FileSystemAssets(content)
    try:
        index = repo.get_scene_index()
    except ScriptError as e:
        return [f"scene index: {e}"], warnings, 0
    if index.is_empty:
        errors.append("scene index lists no chapters")

    count = 0
    for chapter in index.chapters:
        for file_id in index.scenes(chapter):
            count += 1
            try:
                script = repo.get_scene_script(file_id)
            except ScriptError as e:
                errors.append(f"{chapter}/{file_id}: {e}")
                continue
            for n, line in enumerate(script.lines, start=1):
                refs = []
                if isinstance(line, Dialogue):
                    refs = [r for r in (line.background, line.character) if r]
                elif isinstance(line, AudioPlay):
                    refs = [line.path]
                for ref in refs:
                    if not assets.exists(ref):
                        warnings.append(f"{file_id} line {n}: missing asset {ref}")
    return errors, warnings, count


def _cmd_check(content: Path) -> int:
    errors, warnings, count = check_content(content)
    for w in warnings:
        print(f"warning: {w}")
    for e in errors:
        print(f"error: {e}")
    if errors:
        print(f"{len(errors)} error(s) in {count} scene(s)")
        return 1
    print(f"OK: {count} scene(s)")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
