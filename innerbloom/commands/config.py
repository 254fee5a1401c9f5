"""``innerbloom config`` — show effective task-generation settings (credential redacted)."""
from __future__ import annotations


def register(subparsers) -> None:
    p = subparsers.add_parser("config", help="Show effective settings after env overrides")
    p.set_defaults(func=run)


def run(args) -> int:
    settings = args.settings
    print("Effective taskgen settings (after env overrides):")
    print()
    for key, value in settings.redacted().items():
        if isinstance(value, list):
            print(f"- {key}:")
            for item in value:
                print(f"    {item}")
        else:
            print(f"- {key}: {value}")

    print("\nTemplate directories searched (in order):")
    for path in settings.template_dir_candidates():
        print(f"    {path}")

    print("\nOverride pattern:")
    print("  OPENAI_MODEL, OPENAI_API_KEY, OPENAI_BASE_URL, TASKGEN_OPENAI_TIMEOUT (ms)")
    print("  DB_SNAPSHOT_PATH, TASKGEN_PROMPTS_PATH, TASKGEN_DB_PATH, TASKGEN_APP_ROOT, TASKGEN_EXPORTS_DIR")
    return 0
