"""Core workflow engine components."""

from .exceptions import (
    WorkflowEngineError,
    GraphValidationError,
    UnknownModuleError,
    StepExecutionError,
    StepTimeoutError,
    DeadlockError,
    ExecutionCancelledError,
    ExecutorRegistryError,
    StorageError,
    ConfigurationError,
    APIError,
)
from .logging import setup_logging, get_logger
from .capability_registry import CapabilityRegistry
from .executor_registry import ExecutorRegistry
from .dependency_graph import ExecutionGraph, ExecutionNode, analyze_parallelism
from .input_merger import gather_inputs, merge_results
from .parallel_executor import ParallelWorkflowExecutor
from .workflow_inspector import WorkflowInspector
from .auto_remediation import auto_fix_workflow_with_human_modules

__all__ = [
    "WorkflowEngineError",
    "GraphValidationError",
    "UnknownModuleError",
    "StepExecutionError",
    "StepTimeoutError",
    "DeadlockError",
    "ExecutionCancelledError",
    "ExecutorRegistryError",
    "StorageError",
    "ConfigurationError",
    "APIError",
    "setup_logging",
    "get_logger",
    "CapabilityRegistry",
    "ExecutorRegistry",
    "ExecutionGraph",
    "ExecutionNode",
    "analyze_parallelism",
    "gather_inputs",
    "merge_results",
    "ParallelWorkflowExecutor",
    "WorkflowInspector",
    "auto_fix_workflow_with_human_modules",
]
