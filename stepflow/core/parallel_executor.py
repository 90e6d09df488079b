"""Parallel execution engine for dependency-ordered step lists."""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..models.core import ExecutionStats, FailurePolicy, NodeStatusEnum, ParallelismAnalysis, Step
from .capability_registry import CapabilityRegistry
from .dependency_graph import ExecutionGraph, ExecutionNode, analyze_parallelism
from .exceptions import (
    DeadlockError,
    ExecutionCancelledError,
    StepExecutionError,
    StepTimeoutError,
    UnknownModuleError,
    WorkflowEngineError,
)
from .executor_registry import ExecutorRegistry
from .input_merger import gather_inputs
from .logging import get_logger, log_with_context

logger = get_logger(__name__)


class ParallelWorkflowExecutor:
    """Runs the steps of a workflow level by level, in parallel where dependencies allow.

    Each call to :meth:`execute` drives one run to completion. Every step whose
    dependencies have all finished is launched at once; the driver waits for
    the whole batch before looking for the next ready set. A failed step still
    counts as finished so its dependents can run against its error record
    (unless ``failure_policy`` is ``SKIP_DEPENDENTS``).
    """

    def __init__(
        self,
        steps: Sequence[Step],
        capability_registry: CapabilityRegistry,
        executor_registry: ExecutorRegistry,
        *,
        step_timeout: Optional[float] = None,
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE,
        simulate_missing_executors: bool = False,
        simulated_delay: float = 0.5,
        run_id: Optional[str] = None,
    ):
        """Initialize the executor for one run.

        Args:
            steps: Steps of the workflow, in list order
            capability_registry: Read-only module capabilities
            executor_registry: Bindings from module id to executor
            step_timeout: Default per-step timeout in seconds (None disables it)
            failure_policy: Whether dependents of a failed step still run
            simulate_missing_executors: Produce a simulated record for modules without executor
            simulated_delay: Seconds a simulated execution takes
            run_id: Identifier used in log context
        """
        self.steps: List[Step] = list(steps)
        self.graph = ExecutionGraph(self.steps)
        self.capability_registry = capability_registry
        self.executor_registry = executor_registry
        self.step_timeout = step_timeout
        self.failure_policy = FailurePolicy(failure_policy)
        self.simulate_missing_executors = simulate_missing_executors
        self.simulated_delay = simulated_delay
        self.run_id = run_id or str(uuid.uuid4())

        self._batch_tasks: List[asyncio.Task] = []
        self._cancel_requested = False
        self._started_at: Optional[float] = None
        self._finished_at: Optional[float] = None

    @staticmethod
    def analyze_parallelism(steps: Sequence[Step]) -> ParallelismAnalysis:
        return analyze_parallelism(steps)

    async def execute(self) -> Dict[str, Any]:
        """Execute all steps and return the result record of each, keyed by instance id.

        Raises:
            DeadlockError: If steps remain but none can become ready
            ExecutionCancelledError: If :meth:`cancel` was called during the run
        """
        self._started_at = time.perf_counter()

        log_with_context(
            logger, logging.INFO,
            f"Starting parallel execution of {self.graph.total} steps",
            run_id=self.run_id
        )

        try:
            while True:
                if self._cancel_requested:
                    raise ExecutionCancelledError(
                        f"Execution {self.run_id} was cancelled"
                    ).add_context(run_id=self.run_id)
                if self.graph.is_finished():
                    break

                ready = self.graph.ready_nodes()

                if self.failure_policy is FailurePolicy.SKIP_DEPENDENTS and self._skip_blocked(ready):
                    continue

                if not ready:
                    # Batches are joined before this point, so nothing is running here.
                    pending = self.graph.pending_ids()
                    logger.error(f"Workflow deadlock detected in run {self.run_id}; stuck steps: {pending}")
                    raise DeadlockError(
                        "Workflow deadlock detected - no steps can execute",
                        pending_steps=pending,
                        context={"run_id": self.run_id}
                    )

                await self._run_batch(ready)

        except asyncio.CancelledError:
            self._fail_running("Execution cancelled")
            logger.warning(f"Run {self.run_id} cancelled with {len(self.graph.running)} steps in flight")
            raise
        finally:
            self._finished_at = time.perf_counter()

        log_with_context(
            logger, logging.INFO,
            f"Parallel execution finished in {self.duration_ms:.1f}ms "
            f"({len(self.failed_steps())} failed)",
            run_id=self.run_id
        )

        return self.collect_results()

    def collect_results(self) -> Dict[str, Any]:
        """Result records produced so far, keyed by instance id in step order."""
        return {
            instance_id: node.result
            for instance_id, node in self.graph.nodes.items()
            if node.result is not None
        }

    def cancel(self) -> None:
        """Abort in-flight steps and stop the run at the next scheduling point."""
        self._cancel_requested = True
        for task in self._batch_tasks:
            task.cancel()
        logger.info(f"Cancellation requested for run {self.run_id}")

    async def _run_batch(self, ready: List[ExecutionNode]) -> None:
        """Launch one ready set and wait for every member to finish."""
        ids = [node.instance_id for node in ready]
        logger.info(f"Executing {len(ready)} steps in parallel: {ids}")

        for node in ready:
            self.graph.mark_running(node)

        self._batch_tasks = [asyncio.ensure_future(self._execute_step(node)) for node in ready]
        try:
            outcomes = await asyncio.gather(*self._batch_tasks, return_exceptions=True)
        finally:
            self._batch_tasks = []

        for node, outcome in zip(ready, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                self.graph.mark_failed(node, "Execution cancelled")
            elif isinstance(outcome, BaseException):
                message = outcome.message if isinstance(outcome, WorkflowEngineError) else str(outcome)
                self.graph.mark_failed(node, message)
                log_with_context(
                    logger, logging.ERROR,
                    f"Failed: {node.instance_id} - {message}",
                    run_id=self.run_id, instance_id=node.instance_id, module_id=node.step.module_id
                )
            else:
                self.graph.mark_completed(node, outcome)
                log_with_context(
                    logger, logging.INFO,
                    f"Completed: {node.instance_id}",
                    run_id=self.run_id, instance_id=node.instance_id, module_id=node.step.module_id
                )

    async def _execute_step(self, node: ExecutionNode) -> Dict[str, Any]:
        """Run one step and return its result record; faults propagate to the batch."""
        step = node.step
        log_with_context(
            logger, logging.DEBUG,
            f"Executing step: {step.instance_id} ({step.module_id})",
            run_id=self.run_id, instance_id=step.instance_id, module_id=step.module_id
        )

        module = self.capability_registry.get_capability(step.module_id)
        if module is None:
            raise UnknownModuleError(
                f"Module not found: {step.module_id}",
                module_id=step.module_id,
                instance_id=step.instance_id
            )

        input_data = gather_inputs(step.depends_on, self._results_by_id())

        timeout = step.timeout if step.timeout is not None else self.step_timeout
        call = self._invoke(step, module.name, input_data)
        if timeout is None:
            result = await call
        else:
            try:
                result = await asyncio.wait_for(call, timeout=timeout)
            except asyncio.TimeoutError:
                raise StepTimeoutError(
                    f"Step {step.instance_id} timed out after {timeout} seconds",
                    timeout=timeout,
                    instance_id=step.instance_id,
                    module_id=step.module_id
                )

        if result is None:
            result = {}
        if not isinstance(result, Mapping):
            raise StepExecutionError(
                f"Executor for {step.module_id} returned {type(result).__name__} instead of a result record",
                instance_id=step.instance_id,
                module_id=step.module_id
            )
        return dict(result)

    async def _invoke(self, step: Step, module_name: str, input_data: Optional[Dict[str, Any]]) -> Any:
        if self.executor_registry.has_executor(step.module_id):
            return await self.executor_registry.execute(step.module_id, dict(step.config), input_data)

        if not self.simulate_missing_executors:
            raise UnknownModuleError(
                f"No executor found for module: {step.module_id}",
                module_id=step.module_id,
                instance_id=step.instance_id
            )

        await asyncio.sleep(self.simulated_delay)
        return {
            "moduleId": step.module_id,
            "moduleName": module_name,
            "status": "completed",
            "config": dict(step.config),
            "output": f"Simulated output from {module_name}",
            "executedAt": datetime.utcnow().isoformat(),
        }

    def _skip_blocked(self, ready: List[ExecutionNode]) -> bool:
        """Mark ready nodes with an unsuccessful dependency as skipped. Returns True if any were."""
        skipped = False
        for node in ready:
            blocked_by = self.graph.unsuccessful_dependencies(node)
            if blocked_by:
                self.graph.mark_skipped(node, blocked_by)
                logger.info(f"Skipped: {node.instance_id} (upstream failed: {blocked_by})")
                skipped = True
        return skipped

    def _fail_running(self, message: str) -> None:
        for instance_id in list(self.graph.running):
            self.graph.mark_failed(self.graph.nodes[instance_id], message)

    def _results_by_id(self) -> Dict[str, Optional[Dict[str, Any]]]:
        return {instance_id: node.result for instance_id, node in self.graph.nodes.items()}

    def get_stats(self) -> ExecutionStats:
        """Progress counters; safe to call while the run is in flight."""
        return self.graph.get_stats()

    def failed_steps(self) -> List[str]:
        return [
            node.instance_id for node in self.graph.nodes.values()
            if node.status == NodeStatusEnum.FAILED
        ]

    def skipped_steps(self) -> List[str]:
        return [
            node.instance_id for node in self.graph.nodes.values()
            if node.status == NodeStatusEnum.SKIPPED
        ]

    def get_node_summaries(self) -> List[Dict[str, Any]]:
        return [node.summary() for node in self.graph.nodes.values()]

    @property
    def duration_ms(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._finished_at if self._finished_at is not None else time.perf_counter()
        return (end - self._started_at) * 1000
