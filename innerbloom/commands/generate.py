"""``innerbloom generate`` — run the task generator and optionally export the results."""
from __future__ import annotations

import json

from backend.app.constants import MODES, NO_VALUE
from backend.app.core.error_handling import TaskgenError
from backend.app.taskgen.diagnostics import DiagnosticsSink
from backend.app.taskgen.exports import write_task_exports
from backend.app.taskgen.runner import TaskgenRunner
from backend.app.taskgen.snapshot import SOURCES, resolve_snapshot


def register(subparsers) -> None:
    p = subparsers.add_parser("generate", help="Generate tasks for one user or every snapshot user")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--user", type=str, help="User id to generate for")
    target.add_argument("--all", action="store_true", help="Generate for every user in the snapshot")
    p.add_argument("--limit", type=int, default=None, help="Max users with --all")
    p.add_argument("--mode", choices=MODES, default=None, help="Generation mode (default: user's game mode, else flow)")
    p.add_argument("--source", choices=SOURCES + ("snapshot",), default="live", help="Snapshot source")
    p.add_argument("--dry-run", action="store_true", help="Skip the model call and validate a synthetic payload")
    p.add_argument("--seed", type=int, default=None, help="Seed carried through to the result")
    p.add_argument("--export", action="store_true", help="Write json/jsonl/csv exports")
    p.add_argument("--json", action="store_true", help="Print full results as JSON")
    p.set_defaults(func=run)


def _user_mode(snapshot, user_id: str) -> str:
    user = snapshot.find_user(user_id)
    game_mode = snapshot.find_game_mode(user.game_mode_id) if user else None
    code = game_mode.code.lower() if game_mode else ""
    return code if code in MODES else "flow"


def run(args) -> int:
    settings = args.settings
    snapshot = None
    if args.all or args.mode is None:
        try:
            snapshot = resolve_snapshot(settings, args.source, args.user or "batch").snapshot
        except (TaskgenError, ValueError) as exc:
            print(f"  ERROR: {exc}")
            return 1

    if args.all:
        user_ids = [u.user_id for u in snapshot.users]
        if args.limit is not None:
            user_ids = user_ids[: args.limit]
        if not user_ids:
            print("  ERROR: No users found in snapshot")
            return 1
    else:
        user_ids = [args.user]

    diagnostics = DiagnosticsSink(settings.exports_dirs)
    failures = 0
    with TaskgenRunner(settings, diagnostics=diagnostics) as runner:
        for user_id in user_ids:
            mode = args.mode or _user_mode(snapshot, user_id)
            result = runner.generate(user_id, mode, source=args.source, dry_run=args.dry_run, seed=args.seed)
            data = result.model_dump(mode="json")

            if args.json:
                print(json.dumps(data, indent=2, ensure_ascii=False))
            else:
                tasks = len(result.tasks or [])
                print(f"{result.status.upper():5} {user_id} mode={mode} source={result.source} tasks={tasks}")
                for error in result.errors or []:
                    print(f"      - {error}")

            if args.export:
                directory = diagnostics.ensure_exports_dir()
                if directory is not None:
                    group = (result.placeholders or {}).get("TASKS_GROUP_ID", NO_VALUE)
                    for path in write_task_exports(directory, user_id, mode, data, group):
                        print(f"      wrote {path}")

            if result.status != "ok":
                failures += 1

    return 1 if failures else 0
