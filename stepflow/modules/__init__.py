"""Built-in modules: default catalogue and executors."""

from ..core.executor_registry import ExecutorRegistry
from .catalog import DEFAULT_MODULES, default_modules
from .human import human_decision, human_manual_input

BUILTIN_EXECUTORS = {
    "human-decision": (human_decision, "Create a pending approval request"),
    "human-manual-input": (human_manual_input, "Create a manual data-entry request"),
}


def register_default_executors(registry: ExecutorRegistry) -> ExecutorRegistry:
    """Bind the built-in executors that are not bound yet."""
    for module_id, (function, description) in BUILTIN_EXECUTORS.items():
        if not registry.has_executor(module_id):
            registry.register_executor(module_id, function, description)
    return registry


__all__ = [
    "DEFAULT_MODULES",
    "default_modules",
    "human_decision",
    "human_manual_input",
    "register_default_executors",
    "BUILTIN_EXECUTORS",
]
