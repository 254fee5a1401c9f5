"""``innerbloom interactive`` — debug run with prompt override and optional persistence."""
from __future__ import annotations

import json
from pathlib import Path

from backend.app.constants import MODES
from backend.app.taskgen.diagnostics import DiagnosticsSink
from backend.app.taskgen.exports import write_raw_response
from backend.app.taskgen.interactive import InteractiveRequest, create_interactive_runner
from backend.app.taskgen.snapshot import SOURCES


def register(subparsers) -> None:
    p = subparsers.add_parser("interactive", help="Debug task generation for one user")
    p.add_argument("--user", type=str, required=True, help="User id")
    p.add_argument("--mode", choices=MODES, default=None, help="Mode (default: inferred from the user's game mode)")
    p.add_argument("--prompt-file", type=str, default=None, help="Prompt override file (template or plain text)")
    p.add_argument("--source", choices=SOURCES + ("snapshot",), default="live", help="Snapshot source")
    p.add_argument("--from-db", action="store_true", help="Read the user and catalog from the task database")
    p.add_argument("--dry-run", action="store_true", help="Render the prompt without calling the model")
    p.add_argument("--store", action="store_true", help="Persist validated tasks")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--export", action="store_true", help="Write the raw model response on failure")
    p.set_defaults(func=run)


def run(args) -> int:
    settings = args.settings
    override = None
    if args.prompt_file:
        path = Path(args.prompt_file)
        if not path.exists():
            print(f"  ERROR: Prompt file not found: {path}")
            return 1
        override = path.read_text(encoding="utf-8")

    with create_interactive_runner(settings, source=args.source, from_db=args.from_db) as runner:
        result = runner.run(
            InteractiveRequest(
                user_id=args.user,
                mode=args.mode,
                prompt_override=override,
                dry_run=args.dry_run,
                store=args.store,
                seed=args.seed,
            )
        )
    print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))

    if args.export and result.status != "ok" and result.raw_output:
        directory = DiagnosticsSink(settings.exports_dirs).ensure_exports_dir()
        if directory is not None:
            path = write_raw_response(directory, args.user, result.mode or "unknown", result.raw_output)
            print(f"Raw response written to {path}")
    return 0 if result.status == "ok" else 1
