#!/usr/bin/env python3
"""
E-shop Backend CLI.

Primary entry point for all application operations.
Use --service to select what to run, --action to control lifecycle.

Usage:
    python cli.py --help
    python cli.py --service server --verbose
    python cli.py --service server --action stop
    python cli.py --service init-db
    python cli.py --service seed
    python cli.py --service create-admin --email admin@2pnet.cz --password secret123
    python cli.py --service telegram-poll --verbose
    python cli.py --service test --test-type unit
"""

import asyncio
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import click
import structlog

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from eshop.backend.core.logging import get_logger, log_with_source, setup_logging

LONG_RUNNING_SERVICES = {"server", "telegram-poll"}
POLLER_PID_FILE = PROJECT_ROOT / "data" / "telegram-poll.pid"
DEFAULT_PRODUCTS_FILE = PROJECT_ROOT / "data" / "products.json"


def validate_project_root() -> Path:
    """Validate that we're running from the project root."""
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


# =============================================================================
# Lifecycle helpers
# =============================================================================


def _find_process_on_port(port: int) -> list[int]:
    """PIDs listening on a port."""
    result = subprocess.run(["lsof", "-ti", f":{port}"], capture_output=True, text=True)
    return [int(p) for p in result.stdout.strip().split("\n") if p.strip()]


def _read_poller_pid() -> int | None:
    """PID from the poller pid file when that process is still alive."""
    try:
        pid = int(POLLER_PID_FILE.read_text().strip())
        os.kill(pid, 0)
    except (FileNotFoundError, ValueError, ProcessLookupError):
        return None
    except PermissionError:
        return pid
    return pid


def _service_pids(service: str, port: int) -> list[int]:
    if service == "telegram-poll":
        pid = _read_poller_pid()
        return [pid] if pid else []
    return _find_process_on_port(port)


def _service_stop(logger, service: str, port: int) -> None:
    pids = _service_pids(service, port)
    if not pids:
        click.echo(f"No {service} running.")
        return

    for pid in pids:
        os.kill(pid, signal.SIGINT)
        logger.info("Sent SIGINT", extra={"service": service, "pid": pid})

    click.echo(f"{service} stopped (PID: {', '.join(str(p) for p in pids)}).")


def _service_status(service: str, port: int) -> None:
    pids = _service_pids(service, port)
    if pids:
        click.echo(f"{service} is running (PID: {', '.join(str(p) for p in pids)}).")
    else:
        click.echo(f"{service} is not running.")


def _get_service_port(port: int | None) -> int:
    if port is not None:
        return port
    from eshop.backend.core.config import get_app_config

    return get_app_config().application.server.port


# =============================================================================
# Entry point
# =============================================================================


@click.command()
@click.option(
    "--service", "-s",
    type=click.Choice([
        "server", "health", "config", "test", "info",
        "init-db", "seed", "create-admin", "telegram-poll",
    ]),
    default="info",
    help="Service or command to run.",
)
@click.option(
    "--action", "-a",
    type=click.Choice(["start", "stop", "restart", "status"]),
    default="start",
    help="Lifecycle action for long-running services (server, telegram-poll).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output (INFO level logging).")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output (DEBUG level logging).")
@click.option("--host", default=None, help="Server host.")
@click.option("--port", default=None, type=int, help="Server port.")
@click.option("--reload", is_flag=True, help="Enable auto-reload (server only).")
@click.option(
    "--test-type",
    type=click.Choice(["all", "unit", "integration"]),
    default="all",
    help="Test type to run.",
)
@click.option("--coverage", is_flag=True, help="Run tests with coverage.")
@click.option("--email", default=None, help="Admin email (create-admin).")
@click.option("--password", default=None, help="Admin password (create-admin).")
@click.option("--name", default=None, help="Admin display name (create-admin).")
@click.option(
    "--products-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Product list for seed (default: data/products.json).",
)
def main(
    service: str,
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
    test_type: str,
    coverage: bool,
    email: str | None,
    password: str | None,
    name: str | None,
    products_file: Path | None,
) -> None:
    """
    E-shop Backend CLI.

    Use --service to select what to run. For long-running services
    (server, telegram-poll), use --action to control lifecycle
    (start/stop/restart/status).

    \b
    Examples:
        python cli.py --service server --verbose
        python cli.py --service server --action restart --port 8099
        python cli.py --service health
        python cli.py --service config
        python cli.py --service init-db
        python cli.py --service seed
        python cli.py --service create-admin --email a@b.cz --password secret123
        python cli.py --service telegram-poll --verbose
        python cli.py --service telegram-poll --action stop
        python cli.py --service test --test-type unit --coverage
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")
    structlog.contextvars.bind_contextvars(source="cli")
    logger = get_logger(__name__)

    logger.debug("CLI invoked", extra={"service": service, "action": action, "log_level": log_level})

    if service in LONG_RUNNING_SERVICES and action != "start":
        service_port = _get_service_port(port)

        if action == "stop":
            _service_stop(logger, service, service_port)
            return
        elif action == "status":
            _service_status(service, service_port)
            return
        elif action == "restart":
            _service_stop(logger, service, service_port)
            time.sleep(2)

    if service == "server":
        run_server(logger, host, port, reload)
    elif service == "health":
        check_health(logger)
    elif service == "config":
        show_config(logger)
    elif service == "test":
        run_tests(logger, test_type, coverage)
    elif service == "info":
        show_info(logger)
    elif service == "init-db":
        init_db(logger)
    elif service == "seed":
        run_seed(logger, products_file or DEFAULT_PRODUCTS_FILE)
    elif service == "create-admin":
        create_admin(logger, email, password, name)
    elif service == "telegram-poll":
        run_telegram_poll(logger)


# =============================================================================
# Services
# =============================================================================


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Start the FastAPI server under uvicorn."""
    from eshop.backend.core.config import get_app_config

    try:
        server_config = get_app_config().application.server
    except Exception as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        _fail("Could not load config/settings/application.yaml.")

    server_host = host or server_config.host
    server_port = port or server_config.port

    logger.info("Starting server", extra={"host": server_host, "port": server_port, "reload": reload})

    cmd = [
        sys.executable, "-m", "uvicorn",
        "eshop.backend.main:app",
        "--host", server_host,
        "--port", str(server_port),
    ]
    if reload:
        cmd.append("--reload")

    click.echo(f"Starting server at http://{server_host}:{server_port}")
    click.echo("Press Ctrl+C to stop\n")

    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except subprocess.CalledProcessError as e:
        logger.error("Server failed to start", extra={"exit_code": e.returncode})
        sys.exit(e.returncode)


def run_telegram_poll(logger) -> None:
    """Poll Telegram for staff replies until interrupted."""
    from eshop.backend.core.config import get_app_config, get_telegram_poll_interval

    if not get_app_config().features.channel_telegram_enabled:
        _fail("channel_telegram_enabled is false in features.yaml.")

    if _read_poller_pid():
        _fail("Telegram poller is already running. Use --action stop first.")

    interval = get_telegram_poll_interval()
    POLLER_PID_FILE.parent.mkdir(parents=True, exist_ok=True)
    POLLER_PID_FILE.write_text(str(os.getpid()))

    click.echo(f"Polling Telegram every {interval:g}s")
    click.echo("Press Ctrl+C to stop\n")

    try:
        asyncio.run(_poll_until_interrupted(interval))
    except KeyboardInterrupt:
        log_with_source(logger, "telegram", "info", "Telegram poller stopped")
    finally:
        POLLER_PID_FILE.unlink(missing_ok=True)


async def _poll_until_interrupted(interval: float) -> None:
    from eshop.backend.core.database import dispose_engine
    from eshop.backend.services.telegram_poll import run_poll_loop

    try:
        await run_poll_loop(interval)
    finally:
        await dispose_engine()


def init_db(logger) -> None:
    """Create database tables from the models."""
    from eshop.backend.core.database import create_tables, dispose_engine

    async def _run() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.error("Table creation failed", extra={"error": str(e)})
        _fail(f"Could not create tables: {e}")

    click.echo(click.style("Database tables created.", fg="green"))


def run_seed(logger, products_file: Path) -> None:
    """Reset catalog, orders and settings to the demo data."""
    from eshop.backend.core.database import dispose_engine, session_scope
    from eshop.backend.services.seed import SeedService

    async def _run():
        try:
            async with session_scope() as session:
                return await SeedService(session).run(products_file)
        finally:
            await dispose_engine()

    try:
        summary = asyncio.run(_run())
    except Exception as e:
        logger.error("Seed failed", extra={"error": str(e)})
        _fail(f"Seed failed: {e}")

    click.echo(click.style("Seed completed.", fg="green"))
    click.echo(f"  Products:   {summary.products} in {summary.categories} categories")
    click.echo(f"  Orders:     {summary.orders}")
    click.echo(f"  Invoices:   {', '.join(summary.invoices) or '-'}")
    click.echo(f"  Settings:   {', '.join(summary.config_keys)}")


def create_admin(logger, email: str | None, password: str | None, name: str | None) -> None:
    """Create an admin account or reset an existing admin's password."""
    from eshop.backend.core.database import dispose_engine, session_scope
    from eshop.backend.core.exceptions import ApplicationError
    from eshop.backend.services.user import UserService

    if not email or not password:
        _fail("create-admin requires --email and --password.")

    async def _run():
        try:
            async with session_scope() as session:
                return await UserService(session).ensure_admin(email, password, name)
        finally:
            await dispose_engine()

    try:
        user, outcome = asyncio.run(_run())
    except ApplicationError as e:
        _fail(e.message)

    if outcome == "not_admin":
        click.echo(click.style(f"{user.email} exists and is not an admin. Nothing changed.", fg="yellow"))
        sys.exit(1)

    verb = "created" if outcome == "created" else "password updated"
    logger.info("Admin account processed", extra={"email": user.email, "outcome": outcome})
    click.echo(click.style(f"Admin {user.email} {verb}.", fg="green"))


def check_health(logger) -> None:
    """Check application health by testing imports and configuration."""
    click.echo("Checking application health...\n")

    checks = []

    try:
        from eshop.backend.core.config import get_app_config
        from eshop.backend.core.exceptions import ApplicationError  # noqa: F401

        checks.append(("Core imports", True, None))
    except Exception as e:
        checks.append(("Core imports", False, str(e)))
        logger.error("Core imports failed", extra={"error": str(e)})

    try:
        app_config = get_app_config()
        checks.append(("YAML configuration", True, f"App: {app_config.application.name}"))
    except Exception as e:
        checks.append(("YAML configuration", False, str(e)))
        logger.error("Configuration failed", extra={"error": str(e)})

    try:
        from eshop.backend.core.config import get_settings

        get_settings()
        checks.append(("Secrets (.env)", True, None))
    except Exception as e:
        checks.append(("Secrets (.env)", False, str(e)))
        logger.warning("Secrets not configured", extra={"error": str(e)})

    try:
        from eshop.backend.main import get_app

        app = get_app()
        checks.append(("FastAPI application", True, f"Routes: {len(app.routes)}"))
    except Exception as e:
        checks.append(("FastAPI application", False, str(e)))
        logger.error("FastAPI app failed", extra={"error": str(e)})

    try:
        from eshop.backend.models import Base

        checks.append(("Database models", True, f"Tables: {len(Base.metadata.tables)}"))
    except Exception as e:
        checks.append(("Database models", False, str(e)))
        logger.error("Database models failed", extra={"error": str(e)})

    click.echo("Health Check Results:")
    click.echo("-" * 50)

    all_passed = True
    for check_name, passed, detail in checks:
        status = click.style("✓ PASS", fg="green") if passed else click.style("✗ FAIL", fg="red")
        detail_str = f" ({detail})" if detail else ""
        click.echo(f"  {status}  {check_name}{detail_str}")
        all_passed = all_passed and passed

    click.echo("-" * 50)

    if all_passed:
        click.echo(click.style("\nAll checks passed!", fg="green"))
    else:
        click.echo(click.style("\nSome checks failed. See details above.", fg="yellow"))
        sys.exit(1)


def show_config(logger) -> None:
    """Print the validated YAML configuration."""
    import yaml

    from eshop.backend.core.config import get_app_config

    try:
        app_config = get_app_config()
    except Exception as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        _fail(f"Error loading configuration: {e}")

    sections = {
        "application": app_config.application,
        "database": app_config.database,
        "logging": app_config.logging,
        "features": app_config.features,
        "security": app_config.security,
        "concurrency": app_config.concurrency,
        "channels": app_config.channels,
    }
    for section, model in sections.items():
        click.echo(click.style(f"# {section}.yaml", fg="cyan"))
        click.echo(yaml.safe_dump(model.model_dump(), sort_keys=False, allow_unicode=True))


def run_tests(logger, test_type: str, coverage: bool) -> None:
    """Run the test suite."""
    logger.info("Running tests", extra={"type": test_type, "coverage": coverage})

    cmd = [sys.executable, "-m", "pytest"]
    if test_type == "unit":
        cmd.append("tests/unit")
    elif test_type == "integration":
        cmd.append("tests/integration")
    else:
        cmd.append("tests/")
    cmd.append("-v")

    if coverage:
        cmd.extend(["--cov=eshop/backend", "--cov-report=term-missing"])

    click.echo(f"Running: {' '.join(cmd)}\n")

    try:
        result = subprocess.run(cmd)
        sys.exit(result.returncode)
    except FileNotFoundError:
        logger.error("pytest not found. Install with: pip install -e .[dev]")
        sys.exit(1)


def show_info(logger) -> None:
    """Display application information."""
    from eshop.backend.core.config import get_app_config

    try:
        app_settings = get_app_config().application
    except Exception as e:
        logger.error("Failed to load application configuration", extra={"error": str(e)})
        _fail("Could not load application.yaml configuration.")

    click.echo(app_settings.name)
    click.echo("=" * 40)
    click.echo(f"Version: {app_settings.version}")
    click.echo(f"Description: {app_settings.description}")
    click.echo(f"Environment: {app_settings.environment}")
    click.echo()
    click.echo("Services (--service):")
    click.echo("  server         FastAPI server (uvicorn)")
    click.echo("  telegram-poll  Telegram reply poller")
    click.echo("  init-db        Create database tables")
    click.echo("  seed           Load demo catalog, settings and orders")
    click.echo("  create-admin   Create an admin (--email, --password, --name)")
    click.echo("  health         Check application health")
    click.echo("  config         Display configuration")
    click.echo("  test           Run test suite")
    click.echo("  info           Show this information")
    click.echo()
    click.echo("Lifecycle actions (--action, for server and telegram-poll):")
    click.echo("  start          Start the service (default)")
    click.echo("  stop           Stop a running service")
    click.echo("  restart        Stop then start")
    click.echo("  status         Check if running")
    click.echo()


if __name__ == "__main__":
    main()
