# type: ignore
import os

from invoke import task

PACKAGE = "tasmotactl"


@task
def venv(ctx):
    """Create .venv with the package, test and dev extras installed."""
    print("Initializing development environment with uv...")
    ctx.run("uv sync --extra test --extra dev")
    print("Development environment initialization complete!")


@task
def clean(ctx):
    """
    Remove all files and directories that are not under version control.
    Asks for confirmation first; untracked files cannot be recovered.
    """
    ctx.run("git clean -nfdx")

    response = (
        input("Are you sure you want to remove all untracked files? (y/n) [n]: ")
        .strip()
        .lower()
    )
    if response == "y":
        ctx.run("git clean -fdx")


@task
def lint(ctx):
    """Run ruff and mypy over the package and the tests."""
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run(f"mypy src/{PACKAGE}", pty=True)


@task(help={"k": "Only run tests matching this expression"})
def test(ctx, k=None):
    """Run tests with coverage information."""
    selector = f' -k "{k}"' if k else ""
    ctx.run(
        f"pytest --cov={PACKAGE} --cov-report=term-missing{selector}",
        pty=True,
    )


@task
def build_package(ctx):
    """Build sdist and wheel into dist/."""
    ctx.run("rm -rf dist")
    ctx.run("uv build")


@task
def release(ctx):
    """Lint, test, build and publish to PyPI."""
    token = os.getenv("PYPI_TOKEN")
    if not token:
        raise ValueError("PYPI_TOKEN environment variable is not set")

    ctx.run("invoke lint")
    ctx.run("invoke test")

    print("Building package...")
    ctx.run("invoke build-package")

    print("Publishing to PyPI...")
    ctx.run(f"uv publish --token {token}")
