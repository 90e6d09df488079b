"""Execution graph construction and topological leveling for step lists."""

import time
from typing import Any, Dict, List, Optional, Sequence, Set

from ..models.core import ExecutionStats, NodeStatusEnum, ParallelismAnalysis, Step
from .exceptions import GraphValidationError
from .logging import get_logger

logger = get_logger(__name__)


class ExecutionNode:
    """Per-run state of one step."""

    def __init__(self, step: Step):
        self.step = step
        self.status = NodeStatusEnum.PENDING
        self.result: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None

    @property
    def instance_id(self) -> str:
        return self.step.instance_id

    @property
    def depends_on(self) -> List[str]:
        return self.step.depends_on

    @property
    def duration_ms(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at) * 1000

    def is_terminal(self) -> bool:
        return self.status in (NodeStatusEnum.COMPLETED, NodeStatusEnum.FAILED, NodeStatusEnum.SKIPPED)

    def summary(self) -> Dict[str, Any]:
        return {
            "instanceId": self.instance_id,
            "moduleId": self.step.module_id,
            "status": self.status.value,
            "error": self.error,
            "durationMs": round(self.duration_ms, 3) if self.duration_ms is not None else None,
        }


class ExecutionGraph:
    """All execution nodes of a run plus the completed/running id sets.

    Only the driving coroutine of a run mutates the sets and node statuses.
    No cycle detection is done here; a cycle surfaces as a deadlock when the
    graph is executed.
    """

    def __init__(self, steps: Sequence[Step]):
        self.nodes: Dict[str, ExecutionNode] = {}
        self.completed: Set[str] = set()
        self.running: Set[str] = set()

        duplicates = []
        for step in steps:
            if step.instance_id in self.nodes:
                duplicates.append(step.instance_id)
                continue
            self.nodes[step.instance_id] = ExecutionNode(step)

        if duplicates:
            raise GraphValidationError(
                f"Duplicate step instance ids: {', '.join(sorted(set(duplicates)))}",
                validation_errors=[f"Duplicate instanceId '{dup}'" for dup in sorted(set(duplicates))]
            )

        for node in self.nodes.values():
            unknown = [dep for dep in node.depends_on if dep not in self.nodes]
            if unknown:
                logger.warning(
                    f"Step '{node.instance_id}' depends on unknown steps: {', '.join(unknown)}"
                )

    @property
    def total(self) -> int:
        return len(self.nodes)

    def get_node(self, instance_id: str) -> Optional[ExecutionNode]:
        return self.nodes.get(instance_id)

    def ready_nodes(self) -> List[ExecutionNode]:
        """Pending nodes whose dependencies have all reached a terminal state."""
        return [
            node for node in self.nodes.values()
            if node.status == NodeStatusEnum.PENDING
            and all(dep in self.completed for dep in node.depends_on)
        ]

    def pending_ids(self) -> List[str]:
        return [node.instance_id for node in self.nodes.values() if node.status == NodeStatusEnum.PENDING]

    def mark_running(self, node: ExecutionNode) -> None:
        node.status = NodeStatusEnum.RUNNING
        node.started_at = time.perf_counter()
        self.running.add(node.instance_id)

    def mark_completed(self, node: ExecutionNode, result: Dict[str, Any]) -> None:
        node.result = result
        node.status = NodeStatusEnum.COMPLETED
        self._finish(node)

    def mark_failed(self, node: ExecutionNode, error: str) -> None:
        node.error = error
        node.status = NodeStatusEnum.FAILED
        node.result = {"status": "error", "error": error}
        self._finish(node)

    def mark_skipped(self, node: ExecutionNode, failed_dependencies: List[str]) -> None:
        node.status = NodeStatusEnum.SKIPPED
        node.error = f"Skipped because upstream steps failed: {', '.join(failed_dependencies)}"
        node.result = {
            "status": "skipped",
            "reason": node.error,
            "skippedBecause": list(failed_dependencies),
        }
        if node.started_at is None:
            node.started_at = time.perf_counter()
        self._finish(node)

    def _finish(self, node: ExecutionNode) -> None:
        node.finished_at = time.perf_counter()
        self.running.discard(node.instance_id)
        self.completed.add(node.instance_id)

    def unsuccessful_dependencies(self, node: ExecutionNode) -> List[str]:
        """Dependencies that failed or were skipped."""
        return [
            dep for dep in node.depends_on
            if dep in self.nodes
            and self.nodes[dep].status in (NodeStatusEnum.FAILED, NodeStatusEnum.SKIPPED)
        ]

    def is_finished(self) -> bool:
        return len(self.completed) >= self.total

    def get_stats(self) -> ExecutionStats:
        completed = len(self.completed)
        running = len(self.running)
        return ExecutionStats(
            total=self.total,
            completed=completed,
            running=running,
            pending=self.total - completed - running,
        )


def analyze_parallelism(steps: Sequence[Step]) -> ParallelismAnalysis:
    """Group steps into topological levels by repeated removal of zero in-degree nodes.

    This is a reporting function: on a cycle (or a dependency on an unknown
    step) it stops and returns the levels found so far.
    """
    in_degree: Dict[str, int] = {}
    dependents: Dict[str, List[str]] = {}
    order: List[str] = []

    for step in steps:
        if step.instance_id in in_degree:
            continue
        order.append(step.instance_id)
        in_degree[step.instance_id] = len(step.depends_on)
        for dep in step.depends_on:
            dependents.setdefault(dep, []).append(step.instance_id)

    levels: List[List[str]] = []
    remaining = set(order)

    while remaining:
        level = [step_id for step_id in order if step_id in remaining and in_degree[step_id] == 0]

        if not level:
            logger.debug(
                f"Leveling stopped with {len(remaining)} steps left; dependency cycle or unknown dependency"
            )
            break

        levels.append(level)

        for step_id in level:
            remaining.discard(step_id)
        for step_id in level:
            for dependent in dependents.get(step_id, []):
                if dependent in remaining:
                    in_degree[dependent] -= 1

    max_parallelism = max((len(level) for level in levels), default=0)

    return ParallelismAnalysis(
        max_parallelism=max_parallelism,
        levels=levels,
        independent_paths=len(levels[0]) if levels else 0,
    )
