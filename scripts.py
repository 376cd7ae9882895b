#!/usr/bin/env python3
"""Developer shortcuts: ``python scripts.py <command>``."""

import subprocess
import sys

PACKAGES = ["event_management_platform/", "tests/"]


def run(*cmd: str) -> int:
    return subprocess.run(list(cmd)).returncode


def start():
    """Serve the API with auto-reload."""
    return run("uvicorn", "event_management_platform.main:app", "--host", "0.0.0.0", "--port", "3000", "--reload")


def migrate():
    """Apply pending Alembic migrations."""
    return run("alembic", "upgrade", "head")


def worker():
    """Start a Celery worker for notification fan-out."""
    return run("celery", "-A", "event_management_platform.tasks.celery_app", "worker", "--loglevel=INFO")


def lint():
    """Check formatting and types."""
    return run("black", "--check", *PACKAGES) or run("mypy", "event_management_platform/")


def format_code():
    """Reformat with black."""
    return run("black", *PACKAGES)


def test():
    """Run the test suite."""
    return run("pytest", "tests/")


COMMANDS = {
    "start": start,
    "migrate": migrate,
    "worker": worker,
    "lint": lint,
    "format-code": format_code,
    "test": test,
}


if __name__ == "__main__":
    if len(sys.argv) != 2 or sys.argv[1] not in COMMANDS:
        print(f"Usage: python scripts.py {{{','.join(COMMANDS)}}}")
        sys.exit(2)
    sys.exit(COMMANDS[sys.argv[1]]())
