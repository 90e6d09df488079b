"""Executor registry binding module ids to the callables that run them."""

import asyncio
import importlib
import inspect
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .exceptions import ExecutorRegistryError, UnknownModuleError
from .logging import get_logger

logger = get_logger(__name__)

ResultRecord = Dict[str, Any]
StepExecutor = Callable[[Dict[str, Any], Optional[Dict[str, Any]]], Union[ResultRecord, Awaitable[ResultRecord]]]


class ExecutorRegistry:
    """Registry for module executors.

    An executor is called as ``executor(config, merged_input)`` and returns a
    result record. Coroutine functions are awaited directly; plain functions
    run in a worker thread so they do not block the event loop.
    """

    def __init__(self):
        self._executors: Dict[str, StepExecutor] = {}
        self._descriptions: Dict[str, str] = {}

    def register_executor(self, module_id: str, function: StepExecutor, description: str = "") -> None:
        """Register a callable as the executor for a module.

        Args:
            module_id: Module identifier the executor serves
            function: Callable accepting ``(config, merged_input)``
            description: Optional description of the executor

        Raises:
            ExecutorRegistryError: If the id is taken or the callable is invalid
        """
        if not module_id or not module_id.strip():
            raise ExecutorRegistryError("Module id cannot be empty")

        module_id = module_id.strip()

        if not callable(function):
            raise ExecutorRegistryError(f"Executor for '{module_id}' must be callable", module_id=module_id)

        try:
            sig = inspect.signature(function)
            positional = [
                p for p in sig.parameters.values()
                if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            ]
            has_varargs = any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in sig.parameters.values())
            if len(positional) < 2 and not has_varargs:
                raise ExecutorRegistryError(
                    f"Executor for '{module_id}' must accept (config, merged_input)",
                    module_id=module_id
                )
        except (ValueError, TypeError) as e:
            raise ExecutorRegistryError(f"Cannot inspect executor signature for '{module_id}': {e}", module_id=module_id)

        if module_id in self._executors:
            raise ExecutorRegistryError(f"Executor for '{module_id}' is already registered", module_id=module_id)

        self._executors[module_id] = function
        self._descriptions[module_id] = description.strip() if description else ""

        logger.info(f"Registered executor for '{module_id}' ({getattr(function, '__qualname__', function)})")

    def register_from_path(self, module_id: str, path: str, description: str = "") -> None:
        """Register an executor given as ``package.module:function``.

        Raises:
            ExecutorRegistryError: If the path is malformed or cannot be imported
        """
        if ":" not in path:
            raise ExecutorRegistryError(f"Executor path '{path}' must look like 'package.module:function'", module_id=module_id)

        module_path, function_name = path.split(":", 1)
        try:
            module = importlib.import_module(module_path)
            function = getattr(module, function_name)
        except ImportError as e:
            raise ExecutorRegistryError(f"Cannot import module for executor '{module_id}': {e}", module_id=module_id)
        except AttributeError as e:
            raise ExecutorRegistryError(f"Function not found in module for executor '{module_id}': {e}", module_id=module_id)

        self.register_executor(module_id, function, description)

    def get_executor(self, module_id: str) -> StepExecutor:
        """Retrieve the executor bound to a module id.

        Raises:
            UnknownModuleError: If no executor is bound to the id
        """
        executor = self._executors.get(module_id)
        if executor is None:
            raise UnknownModuleError(f"No executor found for module: {module_id}", module_id=module_id)
        return executor

    def has_executor(self, module_id: str) -> bool:
        return bool(module_id) and module_id in self._executors

    def unregister_executor(self, module_id: str) -> bool:
        """Remove an executor. Returns False when it was not registered."""
        if module_id not in self._executors:
            return False
        del self._executors[module_id]
        self._descriptions.pop(module_id, None)
        logger.info(f"Unregistered executor for '{module_id}'")
        return True

    def list_executors(self) -> Dict[str, str]:
        """Map of module id to executor description."""
        return dict(self._descriptions)

    async def execute(self, module_id: str, config: Dict[str, Any], merged_input: Optional[Dict[str, Any]]) -> ResultRecord:
        """Run the executor bound to ``module_id``.

        Raises:
            UnknownModuleError: If no executor is bound to the id
        """
        executor = self.get_executor(module_id)
        if inspect.iscoroutinefunction(executor):
            result = await executor(config, merged_input)
        else:
            result = await asyncio.to_thread(executor, config, merged_input)
            if inspect.isawaitable(result):
                result = await result
        return result
