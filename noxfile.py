import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]
LATEST = PYTHON_VERSIONS[-1]

# psycopg2 ships a C extension; a cached wheel may target another interpreter
NATIVE_EXTRAS = ["psycopg2"]

nox.options.sessions = ["tests", "domain"]


def install_commerce(session: nox.Session, *, native: bool = False) -> None:
    session.run("poetry", "install", "--with", "test", "--all-extras", external=True)
    if native:
        session.run("pip", "install", "--force-reinstall", "--no-cache-dir", *NATIVE_EXTRAS)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Whole suite on the in-memory providers."""
    install_commerce(session)
    session.run("pytest", *session.posargs)


@nox.session(python=LATEST)
def domain(session: nox.Session) -> None:
    """Aggregates and pure rules only."""
    install_commerce(session)
    session.run("pytest", "-m", "domain", *session.posargs)


@nox.session(python=LATEST)
def scenarios(session: nox.Session) -> None:
    """Lifecycle scenarios: integration flows and the Gherkin features."""
    install_commerce(session)
    session.run("pytest", "-m", "integration or bdd", *session.posargs)


@nox.session(python=LATEST)
def postgres(session: nox.Session) -> None:
    """Whole suite against PostgreSQL; needs DATABASE_URL."""
    install_commerce(session, native=True)
    session.run("python", "src/manage.py", "setup-db", env={"PROTEAN_ENV": "production"})
    try:
        session.run("pytest", "--env", "production", *session.posargs)
    finally:
        session.run("python", "src/manage.py", "drop-db", env={"PROTEAN_ENV": "production"})
