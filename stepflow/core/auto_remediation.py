"""Automatic insertion of human checkpoints into invalid workflows."""

from typing import Callable, List, Optional, Sequence

from ..models.core import AutoFixResult, ModuleCategory, Step
from .capability_registry import CapabilityRegistry
from .logging import get_logger
from .workflow_inspector import (
    HIGH_RISK_MODULES,
    HUMAN_DECISION_ID,
    MANUAL_INPUT_ID,
    MISSING_INPUT_MARKER,
    NO_PROVIDER_MARKER,
    Capabilities,
    WorkflowInspector,
    new_instance_id,
)

logger = get_logger(__name__)

MANUAL_INPUT_CONFIG = {
    "inputType": "Workflow data entry",
    "instruction": "Please enter the required data for subsequent workflow steps",
    "requiredFields": "Data as needed by workflow modules",
    "assignee": "data-entry@company.com",
}

DEFAULT_APPROVER = "manager@company.com"


def _needs_data_entry(errors: Sequence[str]) -> bool:
    markers = (MISSING_INPUT_MARKER.lower(), NO_PROVIDER_MARKER.lower())
    return any(marker in error.lower() for error in errors for marker in markers)


def auto_fix_workflow_with_human_modules(
    steps: Sequence[Step],
    capabilities: Capabilities,
    id_factory: Optional[Callable[[str], str]] = None
) -> AutoFixResult:
    """
    Insert human-decision and human-manual-input steps where a workflow needs them.

    Valid workflows are returned unchanged. For an invalid one, in order:

    1. one manual-input step is prepended if any error reports missing data;
    2. an approval step is inserted before every high-risk step that is not
       already directly preceded by one;
    3. a final decision step is appended when the workflow ends in analysis.

    Inserted steps carry no ``dependsOn``. This is a single pass; callers
    re-validate the result themselves.

    Args:
        steps: Steps in list order
        capabilities: Registry or iterable of module descriptors
        id_factory: Callable producing an instance id from a prefix

    Returns:
        AutoFixResult with the new step list and one change note per insertion
    """
    registry = CapabilityRegistry.coerce(capabilities)
    make_id = id_factory or new_instance_id

    fixed: List[Step] = list(steps)
    changes: List[str] = []

    validation = WorkflowInspector.validate_workflow(steps, registry)
    if validation.is_valid:
        return AutoFixResult(fixed_steps=fixed, changes=changes)

    if _needs_data_entry(validation.errors):
        fixed.insert(0, Step(
            instance_id=make_id(MANUAL_INPUT_ID),
            module_id=MANUAL_INPUT_ID,
            config=dict(MANUAL_INPUT_CONFIG),
        ))
        changes.append('Added "Human Manual Input" for data entry by team members')

    i = 0
    while i < len(fixed):
        if fixed[i].module_id in HIGH_RISK_MODULES:
            if not (i > 0 and fixed[i - 1].module_id == HUMAN_DECISION_ID):
                module = registry.get_capability(fixed[i].module_id)
                module_name = module.name if module else "this operation"
                fixed.insert(i, Step(
                    instance_id=make_id(HUMAN_DECISION_ID),
                    module_id=HUMAN_DECISION_ID,
                    config={
                        "approver": DEFAULT_APPROVER,
                        "instruction": f"Please review and approve {module_name} before execution",
                        "decisionType": "Approval",
                    },
                ))
                changes.append(f'Added "Human Decision" approval checkpoint before {module_name}')
                i += 1
        i += 1

    if fixed:
        last = fixed[-1]
        last_module = registry.get_capability(last.module_id)
        if (last_module is not None and last_module.category == ModuleCategory.ANALYSIS
                and last.module_id != HUMAN_DECISION_ID):
            fixed.append(Step(
                instance_id=make_id(f"{HUMAN_DECISION_ID}-final"),
                module_id=HUMAN_DECISION_ID,
                config={
                    "approver": DEFAULT_APPROVER,
                    "instruction": "Please review analysis results and decide on next actions",
                    "decisionType": "Strategic Decision",
                },
            ))
            changes.append('Added final "Human Decision" to review analysis and approve next actions')

    logger.info(f"Auto-fix inserted {len(changes)} human steps into a {len(steps)}-step workflow")
    return AutoFixResult(fixed_steps=fixed, changes=changes)
