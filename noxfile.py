from __future__ import annotations

import nox

PYTHON_VERSION = "3.12"
nox.options.default_venv_backend = "uv"
nox.options.stop_on_first_error = True
nox.options.reuse_existing_virtualenvs = True


@nox.session(name="test", python=PYTHON_VERSION)
def test(session):
    """Run pytest with optional arguments forwarded from the command line."""
    session.run("uv", "pip", "install", ".[test]")
    session.run("uv", "run", "pytest", *session.posargs)


@nox.session(name="format", python=PYTHON_VERSION)
def format(session):
    """Lint the code and apply fixes in-place whenever possible."""
    session.run("uv", "pip", "install", ".[format]")
    session.run("ruff", "format", ".")
    session.run("ruff", "check", "--fix", ".")
