"""Nox sessions for the voice chat resilience test suite."""

import nox

PYTHON_VERSIONS = ["3.10", "3.11", "3.12", "3.13"]

nox.options.sessions = ["tests", "integration"]
nox.options.default_venv_backend = "uv"


@nox.session(python=PYTHON_VERSIONS)
def tests(session):
    """Run the unit tests with coverage for the library package."""
    session.install(".[full,dev]")
    session.run(
        "pytest",
        "tests/unit",
        "-q",
        "--cov=voice_chat_resilience",
        "--cov-report=term-missing",
        *session.posargs,
    )


@nox.session(python=PYTHON_VERSIONS[-1])
def integration(session):
    """Run the end-to-end scenarios against the wired core."""
    session.install(".[full,dev]")
    session.run("pytest", "tests/integration", "-q", "--no-cov", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def type_check(session):
    """Run mypy type checking."""
    session.install(".[full,dev]")
    session.install("mypy")
    session.run("mypy", "src/voice_chat_resilience", *session.posargs)
