"""Static validation and data-flow inspection of workflow step lists."""

import uuid
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set, Union

from ..models.core import (
    CompatibilityResult,
    DependencyNode,
    ModuleCategory,
    ModuleConnection,
    ModuleDescriptor,
    OrderSuggestion,
    Step,
    ValidationResult,
)
from .capability_registry import CapabilityRegistry
from .logging import get_logger

logger = get_logger(__name__)

Capabilities = Union[CapabilityRegistry, Iterable[ModuleDescriptor]]
ModuleMap = Mapping[str, ModuleDescriptor]

HUMAN_DECISION_ID = "human-decision"
MANUAL_INPUT_ID = "human-manual-input"
HIGH_RISK_MODULES = ("quotation", "discount-pricing", "email-interact")

MISSING_INPUT_MARKER = "Missing required input"
NO_PROVIDER_MARKER = "No previous step provides"

# Category transitions that earn the compatibility bonus.
CATEGORY_FLOW: Dict[ModuleCategory, List[ModuleCategory]] = {
    ModuleCategory.DATA_COLLECTION: [ModuleCategory.PROCESSING],
    ModuleCategory.PROCESSING: [ModuleCategory.COMMUNICATION, ModuleCategory.ANALYSIS],
    ModuleCategory.COMMUNICATION: [ModuleCategory.DECISION, ModuleCategory.ANALYSIS],
    ModuleCategory.DECISION: [ModuleCategory.ANALYSIS, ModuleCategory.INTEGRATION],
    ModuleCategory.ANALYSIS: [ModuleCategory.INTEGRATION],
    ModuleCategory.INTEGRATION: [],
}

CATEGORY_ORDER = [
    ModuleCategory.DATA_COLLECTION,
    ModuleCategory.PROCESSING,
    ModuleCategory.COMMUNICATION,
    ModuleCategory.DECISION,
    ModuleCategory.ANALYSIS,
    ModuleCategory.INTEGRATION,
]

ORDER_REASONING = [
    "Data collection modules should run first to gather raw data",
    "Processing modules standardize and prepare the data",
    "Communication modules interact with customers using processed data",
    "Decision modules handle approvals and manual interventions",
    "Analysis modules generate insights from the completed interactions",
    "Integration modules sync data with other systems",
]

SHARED_TYPE_SCORE = 0.3
CATEGORY_FLOW_SCORE = 0.4
COMPATIBILITY_THRESHOLD = 0.2
REQUIRED_CONFIDENCE = 0.9
OPTIONAL_CONFIDENCE = 0.6


def new_instance_id(prefix: str) -> str:
    """Fresh step instance id such as ``quotation-3f9a1c2b``."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


class WorkflowInspector:
    """Checks that a step list's declared data contracts line up.

    All checks work on list order and the modules' declared input/output
    types; ``dependsOn`` edges are only relevant to execution. Data
    problems are reported in the result, never raised.
    """

    @staticmethod
    def validate_workflow(steps: Sequence[Step], capabilities: Capabilities) -> ValidationResult:
        """
        Run every static check over a step list.

        Args:
            steps: Steps in list order
            capabilities: Registry or iterable of module descriptors

        Returns:
            ValidationResult; ``is_valid`` is True iff no errors were found
        """
        module_map = CapabilityRegistry.coerce(capabilities).module_map()

        dependency_graph = WorkflowInspector.build_dependency_graph(steps, module_map)

        errors, warnings = WorkflowInspector.validate_data_flow(steps, module_map)
        suggested_connections = WorkflowInspector.generate_suggested_connections(steps, module_map)
        errors.extend(WorkflowInspector.check_missing_dependencies(steps, module_map))
        warnings.extend(WorkflowInspector.suggest_human_intervention_modules(steps, module_map, errors))

        result = ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggested_connections=suggested_connections,
            dependency_graph=dependency_graph,
        )

        logger.debug(
            f"Validated {len(steps)} steps: {len(errors)} errors, {len(warnings)} warnings"
        )
        return result

    @staticmethod
    def build_dependency_graph(steps: Sequence[Step], module_map: ModuleMap) -> List[DependencyNode]:
        """Describe where each input of each step comes from.

        The provider of a type is the most recent earlier step producing it.
        Steps whose module is unknown get no entry.
        """
        graph: List[DependencyNode] = []
        available: Dict[str, int] = {}

        for index, step in enumerate(steps):
            module = module_map.get(step.module_id)
            if module is None:
                continue

            dependencies = []
            for port in module.inputs:
                data_type = port.data_type.value
                if data_type in available:
                    dependencies.append(f"{data_type} from step {available[data_type]}")
                elif port.required:
                    dependencies.append(f"Missing required input: {data_type}")

            for data_type in module.output_types():
                available[data_type] = index

            graph.append(DependencyNode(
                module_id=step.module_id,
                level=index,
                dependencies=dependencies,
                outputs=list(module.outputs),
            ))

        return graph

    @staticmethod
    def validate_data_flow(steps: Sequence[Step], module_map: ModuleMap):
        """Forward-only availability check.

        Returns:
            Tuple of (errors, warnings)
        """
        errors: List[str] = []
        warnings: List[str] = []
        available: Set[str] = set()

        for index, step in enumerate(steps):
            position = index + 1
            module = module_map.get(step.module_id)
            if module is None:
                errors.append(f"Step {position}: Module '{step.module_id}' not found")
                continue

            for port in module.inputs:
                data_type = port.data_type.value
                if data_type in available:
                    continue
                if port.required:
                    errors.append(
                        f"Step {position}: Missing required input '{data_type}' for module '{module.name}'"
                    )
                else:
                    warnings.append(
                        f"Step {position}: Optional input '{data_type}' not available for module '{module.name}'"
                    )

            available.update(module.output_types())

        return errors, warnings

    @staticmethod
    def check_missing_dependencies(steps: Sequence[Step], module_map: ModuleMap) -> List[str]:
        """Flag required inputs that no earlier step provides.

        When a later step does provide the type, the message says so, since
        the fix is a reorder rather than a new data source.
        """
        errors: List[str] = []
        produced_by: List[Set[str]] = []

        for step in steps:
            module = module_map.get(step.module_id)
            produced_by.append(set(module.output_types()) if module else set())

        for index, step in enumerate(steps):
            module = module_map.get(step.module_id)
            if module is None:
                continue

            provided_before = set().union(*produced_by[:index]) if index else set()
            provided_after = set().union(*produced_by[index + 1:]) if index + 1 < len(steps) else set()

            for port in module.inputs:
                if not port.required:
                    continue
                data_type = port.data_type.value
                if data_type in provided_before:
                    continue

                message = f"Step {index + 1}: No previous step provides required '{data_type}' for '{module.name}'"
                if data_type in provided_after:
                    message += " (produced later in the workflow; consider reordering)"
                errors.append(message)

        return errors

    @staticmethod
    def generate_suggested_connections(steps: Sequence[Step], module_map: ModuleMap) -> List[ModuleConnection]:
        """Propose an edge from the latest producer of each consumed type."""
        suggestions: List[ModuleConnection] = []
        latest_provider: Dict[str, str] = {}

        for step in steps:
            module = module_map.get(step.module_id)
            if module is None:
                continue

            for port in module.inputs:
                data_type = port.data_type.value
                if data_type in latest_provider:
                    suggestions.append(ModuleConnection(
                        from_module=latest_provider[data_type],
                        to_module=module.id,
                        data_type=data_type,
                        confidence=REQUIRED_CONFIDENCE if port.required else OPTIONAL_CONFIDENCE,
                    ))

            for data_type in module.output_types():
                latest_provider[data_type] = module.id

        return suggestions

    @staticmethod
    def get_module_compatibility(module_a: ModuleDescriptor, module_b: ModuleDescriptor) -> CompatibilityResult:
        """Score how well ``module_a`` feeds ``module_b``."""
        reasons: List[str] = []
        score = 0.0

        input_types = module_b.input_types()
        common = [data_type for data_type in module_a.output_types() if data_type in input_types]

        if common:
            score += len(common) * SHARED_TYPE_SCORE
            reasons.append(f"Shares {len(common)} compatible data types: {', '.join(common)}")

        if module_b.category in CATEGORY_FLOW.get(module_a.category, []):
            score += CATEGORY_FLOW_SCORE
            reasons.append(
                f"Category flow: {module_a.category.value} -> {module_b.category.value} is optimal"
            )

        return CompatibilityResult(
            compatible=score > COMPATIBILITY_THRESHOLD,
            score=round(score, 4),
            reasons=reasons,
        )

    @staticmethod
    def suggest_optimal_order(module_ids: Sequence[str], capabilities: Capabilities) -> OrderSuggestion:
        """Order module ids by category, keeping input order within a category."""
        registry = CapabilityRegistry.coerce(capabilities)
        buckets: Dict[ModuleCategory, List[str]] = {category: [] for category in CATEGORY_ORDER}

        for module_id in module_ids:
            module = registry.get_capability(module_id)
            if module is None:
                logger.debug(f"Dropping unknown module '{module_id}' from order suggestion")
                continue
            buckets[module.category].append(module_id)

        order = [module_id for category in CATEGORY_ORDER for module_id in buckets[category]]
        return OrderSuggestion(order=order, reasoning=list(ORDER_REASONING))

    @staticmethod
    def suggest_human_intervention_modules(
        steps: Sequence[Step],
        module_map: ModuleMap,
        errors: Sequence[str]
    ) -> List[str]:
        """Recommend human-decision or manual-input steps for common gaps."""
        suggestions: List[str] = []

        module_ids = [step.module_id for step in steps]
        has_decision = HUMAN_DECISION_ID in module_ids
        has_manual_input = MANUAL_INPUT_ID in module_ids

        missing_data = [error for error in errors if MISSING_INPUT_MARKER in error]
        no_source = [error for error in errors if NO_PROVIDER_MARKER in error]

        if missing_data and not has_manual_input:
            suggestions.append(
                'Suggestion: Missing data detected. Add "Human Manual Input" for data entry by team members'
            )
        if no_source and not has_manual_input:
            suggestions.append(
                'Suggestion: Add "Human Manual Input" to manually enter missing information'
            )

        if any(module_id in HIGH_RISK_MODULES for module_id in module_ids) and not has_decision:
            suggestions.append(
                'Suggestion: Financial/communication modules detected. Add "Human Decision" for approval checkpoints'
            )

        if len(steps) > 5 and not has_decision:
            suggestions.append(
                'Suggestion: Complex workflow detected. Add "Human Decision" for review and approval gates'
            )

        categories = []
        for step in steps:
            module = module_map.get(step.module_id)
            categories.append(module.category if module else None)

        if not has_manual_input:
            for current, following in zip(categories, categories[1:]):
                if current == ModuleCategory.DATA_COLLECTION and following == ModuleCategory.COMMUNICATION:
                    suggestions.append(
                        'Suggestion: Data gap detected. Add "Human Manual Input" to enrich data '
                        'between collection and communication'
                    )

        if categories and categories[-1] == ModuleCategory.ANALYSIS and not has_decision:
            suggestions.append(
                'Suggestion: Analysis endpoint detected. Add "Human Decision" to review insights '
                'and approve next actions'
            )

        return suggestions

    @staticmethod
    def analyze_data_flow(steps: Sequence[Step], module_map: ModuleMap) -> Dict[str, Any]:
        """Per-step view of input availability plus bottlenecks and reorder hints."""
        flow: List[Dict[str, Any]] = []
        bottlenecks: List[str] = []
        suggestions: List[str] = []
        available: Set[str] = set()

        for index, step in enumerate(steps):
            module = module_map.get(step.module_id)
            if module is None:
                continue

            flow.append({
                "stepIndex": index,
                "instanceId": step.instance_id,
                "moduleName": module.name,
                "inputs": [
                    {
                        "type": port.data_type.value,
                        "required": port.required,
                        "available": port.data_type.value in available,
                    }
                    for port in module.inputs
                ],
                "outputs": module.output_types(),
            })

            missing = [
                port.data_type.value for port in module.inputs
                if port.required and port.data_type.value not in available
            ]
            if missing:
                bottlenecks.append(
                    f"Step {index + 1} ({module.name}): Missing required data - {', '.join(missing)}"
                )

            if index > 0 and not module.inputs:
                suggestions.append(
                    f"Step {index + 1} ({module.name}): Consider moving earlier in workflow "
                    "as it doesn't depend on other modules"
                )

            available.update(module.output_types())

        return {"flow": flow, "bottlenecks": bottlenecks, "suggestions": suggestions}

    @staticmethod
    def auto_connect(module_ids: Sequence[str], capabilities: Capabilities, id_factory=None) -> Dict[str, Any]:
        """Build a step list from module ids in suggested order and validate it.

        Args:
            module_ids: Modules to include
            capabilities: Registry or iterable of module descriptors
            id_factory: Callable producing an instance id from a module id

        Returns:
            Dict with ``steps`` (Step list) and ``validation`` (ValidationResult)
        """
        registry = CapabilityRegistry.coerce(capabilities)
        make_id = id_factory or new_instance_id

        order = WorkflowInspector.suggest_optimal_order(module_ids, registry).order
        steps = []
        for module_id in order:
            module = registry.get_capability(module_id)
            steps.append(Step(
                instance_id=make_id(module_id),
                module_id=module_id,
                llm="default" if module is not None and module.is_llm_powered else None,
            ))

        return {
            "steps": steps,
            "validation": WorkflowInspector.validate_workflow(steps, registry),
        }
