"""Command line interface: run the server, manage the database, inspect workflow files."""

import sys
import json
import asyncio
import argparse
from typing import Any, Dict, List

from .config import (
    AppConfig,
    LogLevel,
    load_config,
    get_development_config,
    get_production_config,
    get_testing_config,
    validate_config
)
from .core.exceptions import WorkflowEngineError
from .core.logging import get_logger, setup_logging
from .models.core import Step


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="stepflow",
        description="Stepflow - validate, auto-fix and run module workflows in parallel"
    )

    # Server configuration
    parser.add_argument("--host", help="Host to bind the server to")
    parser.add_argument("--port", type=int, help="Port to bind the server to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    # Environment configuration
    parser.add_argument(
        "--env",
        choices=["development", "production", "testing"],
        help="Environment configuration preset"
    )
    parser.add_argument("--config", help="Path to a .env configuration file")

    parser.add_argument("--database-url", help="Database connection URL")

    # Logging configuration
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        help="Logging level"
    )
    parser.add_argument("--log-file", help="Path to log file")

    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    # Execution engine configuration
    parser.add_argument(
        "--max-concurrent-executions",
        type=int,
        help="Maximum number of concurrent workflow executions"
    )
    parser.add_argument("--step-timeout", type=float, help="Default per-step timeout in seconds")
    parser.add_argument(
        "--simulate-missing-executors",
        action="store_true",
        help="Produce simulated results for modules without an executor"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the workflow server")
    run_parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)"
    )

    db_parser = subparsers.add_parser("db", help="Database management commands")
    db_subparsers = db_parser.add_subparsers(dest="db_command", help="Database commands")
    db_subparsers.add_parser("init", help="Create tables and seed the default module catalogue")
    db_subparsers.add_parser("reset", help="Drop and recreate all tables")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_subparsers.add_parser("validate", help="Validate configuration")

    # Offline commands working on a JSON file of steps
    for name, help_text in (
        ("validate", "Validate a workflow file against the default module catalogue"),
        ("analyze", "Show the parallelism levels of a workflow file"),
        ("auto-fix", "Insert human checkpoints into a workflow file"),
        ("execute", "Execute a workflow file in parallel"),
    ):
        file_parser = subparsers.add_parser(name, help=help_text)
        file_parser.add_argument("workflow_file", help="JSON file holding a step list or {\"steps\": [...]}")

    return parser


def load_configuration(args: argparse.Namespace) -> AppConfig:
    """Load configuration based on command line arguments."""
    if args.env == "development":
        config = get_development_config()
    elif args.env == "production":
        config = get_production_config()
    elif args.env == "testing":
        config = get_testing_config()
    else:
        config = load_config(args.config)

    # Command line arguments win over presets and environment
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.reload:
        config.reload = True
    if args.database_url:
        config.database_url = args.database_url
    if args.log_level:
        config.log_level = LogLevel(args.log_level)
    if args.log_file:
        config.log_file = args.log_file
    if args.debug:
        config.debug = True
    if args.max_concurrent_executions:
        config.max_concurrent_executions = args.max_concurrent_executions
    if args.step_timeout:
        config.step_timeout = args.step_timeout
    if args.simulate_missing_executors:
        config.simulate_missing_executors = True

    return config


def load_steps(path: str) -> List[Step]:
    """Read a step list from a JSON file."""
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)

    if isinstance(data, dict):
        data = data.get("steps", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of steps or an object with a 'steps' list")

    return [Step.model_validate(item) for item in data]


def build_offline_service(config: AppConfig):
    """Service over the default catalogue and built-in executors, without a database."""
    from .core.executor_registry import ExecutorRegistry
    from .core.service import WorkflowService
    from .modules import default_modules, register_default_executors

    return WorkflowService(
        register_default_executors(ExecutorRegistry()),
        capabilities=default_modules(),
        max_concurrent_executions=config.max_concurrent_executions,
        executor_options=config.get_executor_options()
    )


def run_workflow_command(command: str, path: str, config: AppConfig) -> int:
    """Run one of the offline workflow commands and print its JSON report."""
    steps = load_steps(path)
    service = build_offline_service(config)

    if command == "validate":
        report: Dict[str, Any] = service.validate(steps).to_wire()
        exit_code = 0 if report["isValid"] else 2
    elif command == "analyze":
        report = service.analyze(steps)
        exit_code = 0
    elif command == "auto-fix":
        report = service.auto_fix(steps)
        exit_code = 0 if report["validation"]["isValid"] else 2
    else:
        report = asyncio.run(service.execute_parallel(steps))
        exit_code = 0 if report["status"] == "completed" else 2

    print(json.dumps(report, indent=2, default=str))
    return exit_code


def run_server(config: AppConfig, workers: int = 1):
    """Run the workflow server."""
    import uvicorn
    from .factory import create_app

    logger = get_logger(__name__)
    logger.info(f"Starting server with {workers} worker(s)")

    uvicorn_config = config.get_uvicorn_config()

    if workers > 1:
        # Each worker builds its own app from the environment
        uvicorn.run(
            "stepflow.factory:create_app",
            factory=True,
            workers=workers,
            **uvicorn_config
        )
    else:
        app = create_app(config)
        uvicorn.run(app, **uvicorn_config)


def run_database_command(command: str, config: AppConfig):
    """Run database management commands."""
    from .modules import default_modules
    from .storage.database import create_tables, drop_tables, get_database_engine
    from .storage.repositories import ModuleStore

    logger = get_logger(__name__)

    get_database_engine(
        config.database_url,
        echo=config.database_echo,
        connect_args=config.get_database_connect_args()
    )

    if command == "reset":
        logger.info("Dropping database tables...")
        drop_tables()

    logger.info("Creating database tables...")
    create_tables()

    if config.load_default_modules:
        seeded = ModuleStore().seed(default_modules())
        logger.info(f"Seeded {seeded} modules")

    logger.info(f"Database {command} completed successfully")


def show_configuration(config: AppConfig):
    """Show current configuration."""
    print("Current Configuration:")
    print(f"  App Name: {config.app_name}")
    print(f"  Version: {config.app_version}")
    print(f"  Debug: {config.debug}")
    print(f"  Host: {config.host}")
    print(f"  Port: {config.port}")
    print(f"  Database URL: {config.database_url}")
    print(f"  Log Level: {config.log_level.value}")
    print(f"  Max Concurrent Executions: {config.max_concurrent_executions}")
    print(f"  Step Timeout: {config.step_timeout}")
    print(f"  Failure Policy: {config.failure_policy.value}")
    print(f"  Simulate Missing Executors: {config.simulate_missing_executors}")


def validate_configuration_command(config: AppConfig):
    """Validate configuration and show results."""
    try:
        validate_config(config)
        print("Configuration validation: PASSED")
        print("All configuration settings are valid.")
    except WorkflowEngineError as e:
        print("Configuration validation: FAILED")
        print(f"Error: {e.message}")
        sys.exit(1)


def main(argv=None):
    """Main entry point for the application."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config = load_configuration(args)

        if args.command == "config":
            if args.config_command == "show":
                show_configuration(config)
            elif args.config_command == "validate":
                validate_configuration_command(config)
            else:
                print("Configuration command required. Use --help for options.")
                sys.exit(1)
            return

        validate_config(config)

        if args.command == "run" or args.command is None:
            run_server(config, getattr(args, "workers", 1))

        elif args.command == "db":
            if not args.db_command:
                print("Database command required. Use --help for options.")
                sys.exit(1)
            setup_logging(level=config.log_level.value, log_file=config.log_file)
            run_database_command(args.db_command, config)

        else:
            sys.exit(run_workflow_command(args.command, args.workflow_file, config))

    except (WorkflowEngineError, ValueError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
