"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .config import AppConfig, get_config, validate_config
from .core.executor_registry import ExecutorRegistry
from .core.logging import setup_logging, get_logger
from .core.middleware import ErrorHandlingMiddleware, PerformanceMonitoringMiddleware
from .core.service import WorkflowService
from .modules import default_modules, register_default_executors
from .storage.database import create_tables, get_database_engine, get_session, reset_database_engine
from .storage.repositories import ExecutionStore, ModuleStore, WorkflowStore
from .api.endpoints import router, init_dependencies
from .api.inspector import router as inspector_router

logger = get_logger(__name__)


class ApplicationState:
    """Container for application state and components."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.executor_registry: Optional[ExecutorRegistry] = None
        self.workflow_store: Optional[WorkflowStore] = None
        self.module_store: Optional[ModuleStore] = None
        self.execution_store: Optional[ExecutionStore] = None
        self.service: Optional[WorkflowService] = None


# Global application state
app_state = ApplicationState()


def initialize_database(config: AppConfig) -> None:
    """Bind the engine to the configured database and create the tables."""
    reset_database_engine()
    get_database_engine(
        config.database_url,
        echo=config.database_echo,
        connect_args=config.get_database_connect_args()
    )
    create_tables()
    logger.info("Database tables created")


def initialize_core_components(config: AppConfig, executor_registry: Optional[ExecutorRegistry] = None) -> ApplicationState:
    """Create the stores, the executor registry and the workflow service."""
    workflow_store = WorkflowStore()
    module_store = ModuleStore()
    execution_store = ExecutionStore()

    if config.load_default_modules:
        module_store.seed(default_modules())

    executor_registry = register_default_executors(executor_registry or ExecutorRegistry())

    service = WorkflowService(
        executor_registry,
        module_store=module_store,
        execution_store=execution_store,
        max_concurrent_executions=config.max_concurrent_executions,
        executor_options=config.get_executor_options()
    )

    app_state.config = config
    app_state.executor_registry = executor_registry
    app_state.workflow_store = workflow_store
    app_state.module_store = module_store
    app_state.execution_store = execution_store
    app_state.service = service

    init_dependencies(
        service=service,
        workflow_store=workflow_store,
        module_store=module_store,
        execution_store=execution_store
    )

    logger.info(f"Core components initialized ({len(executor_registry.list_executors())} executors bound)")
    return app_state


def create_lifespan_handler(config: AppConfig):
    """Create application lifespan handler."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {config.app_name} v{config.app_version}")
        yield
        service = app_state.service
        if service is not None:
            for execution_id in service.active_executions():
                service.cancel_execution(execution_id)
        logger.info(f"Shutting down {config.app_name}")

    return lifespan


def create_app(config: Optional[AppConfig] = None, executor_registry: Optional[ExecutorRegistry] = None) -> FastAPI:
    """Create and configure FastAPI application instance."""
    if config is None:
        config = get_config()

    validate_config(config)

    setup_logging(
        level=config.log_level.value,
        log_file=config.log_file,
        log_format=config.log_format,
        structured=config.log_structured,
        max_size=config.log_max_size,
        backup_count=config.log_backup_count
    )

    initialize_database(config)
    initialize_core_components(config, executor_registry)

    app = FastAPI(
        title=config.app_name,
        description="Validate, auto-fix and run module workflows with dependency-driven parallelism",
        version=config.app_version,
        debug=config.debug,
        lifespan=create_lifespan_handler(config)
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )

    app.add_middleware(ErrorHandlingMiddleware)
    if config.enable_performance_monitoring:
        app.add_middleware(PerformanceMonitoringMiddleware, slow_request_threshold=config.slow_request_threshold)

    app.include_router(router)
    app.include_router(inspector_router)

    add_health_endpoints(app, config)

    return app


def add_health_endpoints(app: FastAPI, config: AppConfig) -> None:
    """Add health check endpoints to the application."""

    @app.get("/")
    async def root():
        """Root endpoint for basic health check."""
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @app.get("/health")
    async def health_check():
        """Health check endpoint with component status."""
        db = get_session()
        try:
            db.execute(text("SELECT 1"))
            database = "healthy"
        finally:
            db.close()

        service = app_state.service
        return {
            "status": "healthy",
            "service": config.app_name.lower().replace(" ", "-"),
            "version": config.app_version,
            "database": database,
            "modules": app_state.module_store.count() if app_state.module_store else 0,
            "executors": len(app_state.executor_registry.list_executors()) if app_state.executor_registry else 0,
            "activeExecutions": len(service.active_executions()) if service else 0,
        }


def get_app_state() -> ApplicationState:
    """Get the current application state."""
    return app_state
