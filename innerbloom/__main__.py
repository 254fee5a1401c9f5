"""Entry point for ``python -m innerbloom <command>``.

Commands:
    generate    – run the task generator for one user or every snapshot user
    interactive – debug run with prompt override and optional persistence
    snapshot    – dump the task database reference tables to a snapshot file
    init-db     – apply SQLite migrations
    config      – show effective (redacted) settings
"""
from innerbloom.cli import main

if __name__ == "__main__":
    main()
