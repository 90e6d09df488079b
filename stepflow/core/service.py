"""Entry points tying the engine, the inspector and the record stores together."""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..models.core import (
    AutoFixResult,
    ExecutionRecord,
    ExecutionStatusEnum,
    ModuleDescriptor,
    Step,
    ValidationResult,
)
from .auto_remediation import auto_fix_workflow_with_human_modules
from .capability_registry import CapabilityRegistry
from .dependency_graph import analyze_parallelism
from .exceptions import DeadlockError, ExecutionCancelledError
from .executor_registry import ExecutorRegistry
from .logging import get_logger, set_logging_context
from .parallel_executor import ParallelWorkflowExecutor
from .workflow_inspector import WorkflowInspector

logger = get_logger(__name__)


class WorkflowService:
    """Runs, validates, analyzes and auto-fixes step lists.

    The capability table is re-read for every call, either from a module
    store or from a fixed list of descriptors, so catalogue changes apply to
    the next run without affecting runs already in flight.
    """

    def __init__(
        self,
        executor_registry: ExecutorRegistry,
        module_store=None,
        execution_store=None,
        capabilities: Optional[Sequence[ModuleDescriptor]] = None,
        max_concurrent_executions: int = 10,
        executor_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the service.

        Args:
            executor_registry: Bindings from module id to executor
            module_store: Source of the capability table (ModuleStore)
            execution_store: Where run records are stored (ExecutionStore), optional
            capabilities: Fixed descriptors, used when no module store is given
            max_concurrent_executions: Runs allowed to execute at once
            executor_options: Keyword arguments for ParallelWorkflowExecutor
        """
        self.executor_registry = executor_registry
        self.module_store = module_store
        self.execution_store = execution_store
        self._capabilities = list(capabilities or [])
        self.executor_options = dict(executor_options or {})
        self._run_slots = asyncio.Semaphore(max_concurrent_executions)
        self._active: Dict[str, ParallelWorkflowExecutor] = {}

    def capability_registry(self) -> CapabilityRegistry:
        """Snapshot of the current module catalogue."""
        if self.module_store is not None:
            return CapabilityRegistry(self.module_store.list())
        return CapabilityRegistry(self._capabilities)

    async def execute_parallel(self, steps: Sequence[Step], workflow_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Execute a step list with maximum parallelism and record the run.

        Args:
            steps: Steps to run
            workflow_id: Stored workflow the steps belong to, if any

        Returns:
            Run report: results, stats, parallelism, status, failed steps, timing

        Raises:
            GraphValidationError: If the steps cannot form an execution graph
            DeadlockError: If the run stalls with steps left
            ExecutionCancelledError: If the run is cancelled
        """
        execution_id = str(uuid.uuid4())
        executor = ParallelWorkflowExecutor(
            steps,
            self.capability_registry(),
            self.executor_registry,
            run_id=execution_id,
            **self.executor_options
        )
        parallelism = executor.analyze_parallelism(steps)
        started_at = datetime.utcnow()

        logger.info(
            f"Starting parallel execution {execution_id} "
            f"(workflow: {workflow_id or 'ad hoc'}, parallelism: {parallelism.max_parallelism})"
        )

        self._store_run(ExecutionRecord(
            id=execution_id,
            workflow_id=workflow_id,
            status=ExecutionStatusEnum.RUNNING,
            stats=executor.get_stats(),
            parallelism=parallelism,
            started_at=started_at,
        ))

        self._active[execution_id] = executor
        try:
            async with self._run_slots:
                set_logging_context(execution_id=execution_id, workflow_id=workflow_id)
                results = await executor.execute()
        except DeadlockError as e:
            self._finish_run(executor, ExecutionStatusEnum.FAILED, e.message)
            raise
        except ExecutionCancelledError as e:
            self._finish_run(executor, ExecutionStatusEnum.CANCELLED, e.message)
            raise
        except asyncio.CancelledError:
            self._finish_run(executor, ExecutionStatusEnum.CANCELLED, "Execution cancelled")
            raise
        finally:
            self._active.pop(execution_id, None)

        failed = executor.failed_steps()
        status = ExecutionStatusEnum.COMPLETED if not failed else ExecutionStatusEnum.PARTIAL
        completed_at = self._finish_run(executor, status, None, results)

        return {
            "executionId": execution_id,
            "workflowId": workflow_id,
            "status": status.value,
            "executionMode": "parallel",
            "duration": f"{executor.duration_ms:.0f}ms",
            "durationMs": round(executor.duration_ms, 3),
            "parallelism": parallelism.to_wire(),
            "results": results,
            "stats": executor.get_stats().to_wire(),
            "failedSteps": failed,
            "skippedSteps": executor.skipped_steps(),
            "nodes": executor.get_node_summaries(),
            "completedAt": completed_at.isoformat(),
        }

    def cancel_execution(self, execution_id: str) -> bool:
        """Cancel a run in flight. Returns False if no such run is active."""
        executor = self._active.get(execution_id)
        if executor is None:
            return False
        executor.cancel()
        return True

    def active_executions(self) -> List[str]:
        return list(self._active)

    def validate(self, steps: Sequence[Step]) -> ValidationResult:
        return WorkflowInspector.validate_workflow(steps, self.capability_registry())

    def analyze(self, steps: Sequence[Step]) -> Dict[str, Any]:
        """Static parallelism report for a step list."""
        analysis = analyze_parallelism(steps)
        return {
            **analysis.to_wire(),
            "canParallelize": analysis.max_parallelism > 1,
            "estimatedSpeedup": f"{analysis.max_parallelism}x (theoretical maximum)",
        }

    def auto_fix(self, steps: Sequence[Step]) -> Dict[str, Any]:
        """Insert human checkpoints and re-validate the result."""
        registry = self.capability_registry()
        fix: AutoFixResult = auto_fix_workflow_with_human_modules(steps, registry)
        validation = WorkflowInspector.validate_workflow(fix.fixed_steps, registry)
        return {
            "originalSteps": [step.to_wire() for step in steps],
            "fixedSteps": [step.to_wire() for step in fix.fixed_steps],
            "changes": fix.changes,
            "validation": validation.to_wire(),
            "autoFixed": bool(fix.changes),
        }

    def _store_run(self, record: ExecutionRecord) -> None:
        if self.execution_store is not None:
            self.execution_store.create(record)

    def _finish_run(
        self,
        executor: ParallelWorkflowExecutor,
        status: ExecutionStatusEnum,
        error_message: Optional[str],
        results: Optional[Dict[str, Any]] = None
    ) -> datetime:
        completed_at = datetime.utcnow()
        if error_message:
            logger.error(f"Execution {executor.run_id} ended as {status.value}: {error_message}")
        else:
            logger.info(f"Execution {executor.run_id} ended as {status.value} in {executor.duration_ms:.1f}ms")

        if self.execution_store is not None:
            self.execution_store.update(
                executor.run_id,
                status=status,
                results=results if results is not None else executor.collect_results(),
                stats=executor.get_stats(),
                duration_ms=round(executor.duration_ms, 3),
                error_message=error_message,
                completed_at=completed_at,
            )
        return completed_at
