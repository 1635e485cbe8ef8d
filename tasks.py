"""Invoke tasks for building, testing, and linting Sortify.

Every task shells out to the `uv` CLI so local runs match CI.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"


def _run_uv(
    ctx: Context,
    args: Sequence[str],
    *,
    echo: bool = True,
    env: Mapping[str, str] | None = None,
) -> None:
    """Execute a uv command with consistent quoting and PTY defaults.

    Args:
        ctx: Invoke execution context.
        args: Additional arguments to append after the `uv` executable.
        echo: Whether to echo the command before running it.
        env: Optional environment variables to layer onto the invocation.
    """
    command = shlex.join(("uv", *args))
    run_env = dict(ctx.config.run.env or {})
    if env:
        run_env.update(env)
    ctx.run(command, echo=echo, pty=True, env=run_env)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment, including dev extras by default."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _run_uv(ctx, args)


@task(help={"clean": "Remove existing artifacts from dist/ before building."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build source and wheel distributions in `dist/` using uv."""
    if clean and DIST_DIR.exists():
        for artifact in DIST_DIR.iterdir():
            if artifact.is_file():
                artifact.unlink()
            else:
                shutil.rmtree(artifact)
    _run_uv(ctx, ["build"])


@task
def exiftool(ctx: Context) -> None:
    """Report the ExifTool executable the metadata backend will use."""
    location = shutil.which("exiftool")
    if location is None:
        print("exiftool not found on PATH; only the Pillow backend will work.")
        return
    ctx.run(f"{shlex.quote(location)} -ver", echo=True)


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional CLI flags forwarded verbatim to pytest.",
    }
)
def tests(
    ctx: Context,
    k: str = "",
    path: str = "tests",
    options: str = "",
) -> None:
    """Run the pytest suite via uv.

    Args:
        ctx: Invoke execution context.
        k: `pytest -k` expression to select tests.
        path: Target path or dotted module for pytest discovery.
        options: Extra CLI arguments appended to the pytest call.
    """
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    if path:
        args.append(path)
    _run_uv(ctx, args)


@task(
    help={
        "fix": "Apply auto-fixes where possible (ruff --fix).",
        "check_format": "Run ruff format before linting to enforce formatting.",
    }
)
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Run Ruff formatting and lint checks via uv."""
    if check_format:
        _run_uv(ctx, ["run", "ruff", "format", "--check", "src", "tests"])
    lint_args: list[str] = ["run", "ruff", "check", "src", "tests"]
    if fix:
        lint_args.append("--fix")
    _run_uv(ctx, lint_args)


@task
def ci(ctx: Context) -> None:
    """Replicate the CI workflow locally via uv."""
    ctx.invoke(lint, check_format=True)
    ctx.invoke(tests)


namespace = Collection(
    sync,
    build,
    exiftool,
    tests,
    lint,
    ci,
)
