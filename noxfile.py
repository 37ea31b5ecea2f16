import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

# Packages with C extensions that must be rebuilt per Python version.
_C_EXT_PACKAGES = ["psycopg2"]


def _install(session: nox.Session) -> None:
    """Install the project with all test extras into the nox virtualenv."""
    session.install("-e", ".[test,postgres,redis,message-db]")
    # Force-rebuild C-extension packages so the .so matches this Python version.
    session.run(
        "pip",
        "install",
        "--force-reinstall",
        "--no-cache-dir",
        *_C_EXT_PACKAGES,
    )


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run domain-layer tests only (no infrastructure required)."""
    _install(session)
    session.run(
        "pytest",
        "tests/inventory/domain/",
        "tests/ordering/domain/",
    )


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_checkout(session: nox.Session) -> None:
    """Run the cross-domain saga, sweeper and HTTP tests."""
    _install(session)
    session.run("pytest", "tests/checkout/")


@nox.session(python=PYTHON_VERSIONS[-1])
def lint(session: nox.Session) -> None:
    """Run ruff over sources and tests."""
    session.install("ruff")
    session.run("ruff", "check", "src", "tests")
