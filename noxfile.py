import nox

PYTHON_VERSIONS = ["3.10", "3.11", "3.12"]
STYLE_TARGETS = ("src", "tests", "noxfile.py")
PYTEST_ARGS = ("-q", "--disable-warnings")

nox.options.reuse_existing_virtualenvs = True
nox.options.error_on_missing_interpreters = False
nox.options.sessions = ("lint", "unit", "integration")


def _dev_install(session: nox.Session) -> None:
    session.install("-e", ".[dev]")


def _hatch(session: nox.Session, *args: str) -> None:
    session.run("hatch", "run", *args, external=True)


@nox.session(python=PYTHON_VERSIONS)
def unit(session: nox.Session) -> None:
    """Fast tests: no sockets, no real process table."""
    _dev_install(session)
    session.run("pytest", *PYTEST_ARGS, "-m", "unit", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def integration(session: nox.Session) -> None:
    """Loopback tests that run the TCP service in-process."""
    _dev_install(session)
    session.run("pytest", *PYTEST_ARGS, "-m", "integration", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def typecheck(session: nox.Session) -> None:
    _dev_install(session)
    session.run("mypy", "src")


@nox.session(python=False)
def lint(session: nox.Session) -> None:
    """Black in check mode, then Ruff without fixes."""
    _hatch(session, "black", "--check", *STYLE_TARGETS)
    _hatch(session, "ruff", "check", *STYLE_TARGETS)


@nox.session(python=False)
def fmt(session: nox.Session) -> None:
    """Reformat and sort imports in place."""
    _hatch(session, "black", *STYLE_TARGETS)
    _hatch(session, "ruff", "check", "--select", "I", "--fix", *STYLE_TARGETS)


@nox.session(python=PYTHON_VERSIONS[-1])
def ci(session: nox.Session) -> None:
    """Everything CI gates on, in one interpreter."""
    _dev_install(session)
    session.run("black", "--check", *STYLE_TARGETS)
    session.run("ruff", "check", *STYLE_TARGETS)
    session.run("mypy", "src")
    session.run("pytest", *PYTEST_ARGS, "--maxfail=1")
