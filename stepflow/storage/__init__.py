"""Storage layer for stepflow."""

from .database import Base, get_database_engine, get_db, get_session, create_tables, drop_tables, reset_database_engine
from .models import WorkflowModel, ModuleModel, ExecutionModel
from .repositories import WorkflowStore, ModuleStore, ExecutionStore

__all__ = [
    "Base",
    "get_database_engine",
    "get_db",
    "get_session",
    "create_tables",
    "drop_tables",
    "reset_database_engine",
    "WorkflowModel",
    "ModuleModel",
    "ExecutionModel",
    "WorkflowStore",
    "ModuleStore",
    "ExecutionStore",
]
