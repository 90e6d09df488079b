"""Data models for the workflow engine."""

from .core import (
    DataTypeEnum,
    ModuleCategory,
    NodeStatusEnum,
    ExecutionStatusEnum,
    FailurePolicy,
    DataPort,
    ConfigField,
    ModuleDescriptor,
    Step,
    ExecutionStats,
    ParallelismAnalysis,
    ModuleConnection,
    DependencyNode,
    ValidationResult,
    CompatibilityResult,
    OrderSuggestion,
    AutoFixResult,
    Workflow,
    ExecutionRecord,
)

__all__ = [
    "DataTypeEnum",
    "ModuleCategory",
    "NodeStatusEnum",
    "ExecutionStatusEnum",
    "FailurePolicy",
    "DataPort",
    "ConfigField",
    "ModuleDescriptor",
    "Step",
    "ExecutionStats",
    "ParallelismAnalysis",
    "ModuleConnection",
    "DependencyNode",
    "ValidationResult",
    "CompatibilityResult",
    "OrderSuggestion",
    "AutoFixResult",
    "Workflow",
    "ExecutionRecord",
]
