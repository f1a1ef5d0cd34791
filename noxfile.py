import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]

COMPONENTS = ["inventory", "ordering", "loyalty", "refunds", "payments", "configuration"]
DOMAIN_COMPONENTS = [c for c in COMPONENTS if c != "configuration"]


def _install(session: nox.Session) -> None:
    """Install the project with all test extras into the nox virtualenv."""
    session.run(
        "poetry",
        "install",
        "--all-extras",
        external=True,
    )


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest")


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run domain-layer tests only (no infrastructure required)."""
    _install(session)
    session.run("pytest", *[f"tests/{component}/domain/" for component in DOMAIN_COMPONENTS])


@nox.session(python=PYTHON_VERSIONS)
def tests_bdd(session: nox.Session) -> None:
    """Run the behaviour scenarios only."""
    _install(session)
    session.run("pytest", *[f"tests/{component}/bdd/" for component in ("inventory", "loyalty", "ordering", "refunds")])
