"""FastAPI endpoints for static workflow inspection and auto-fixing."""

from typing import Any, Dict, List
from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import Field

from ..core.logging import get_logger
from ..core.service import WorkflowService
from ..core.workflow_inspector import WorkflowInspector
from ..models.core import CompatibilityResult, OrderSuggestion, ValidationResult, WireModel
from .endpoints import StepsRequest, get_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/inspector", tags=["inspector"])


class ModuleIdsRequest(WireModel):
    """Request body carrying a list of module ids."""
    module_ids: List[str] = Field(..., alias="moduleIds", description="Module ids to arrange")


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate a workflow"
)
async def validate_workflow(request: StepsRequest, service: WorkflowService = Depends(get_service)):
    """Check the data contracts of a step list without running it."""
    result = service.validate(request.steps)
    logger.info(f"Validated {len(request.steps)} steps: valid={result.is_valid}")
    return result


@router.post(
    "/suggest-order",
    response_model=OrderSuggestion,
    summary="Suggest a category-based module order"
)
async def suggest_order(request: ModuleIdsRequest, service: WorkflowService = Depends(get_service)):
    return WorkflowInspector.suggest_optimal_order(request.module_ids, service.capability_registry())


@router.get(
    "/compatibility/{module_a}/{module_b}",
    response_model=CompatibilityResult,
    summary="Check how well one module feeds another"
)
async def check_compatibility(module_a: str, module_b: str, service: WorkflowService = Depends(get_service)):
    registry = service.capability_registry()
    first = registry.get_capability(module_a)
    second = registry.get_capability(module_b)

    if first is None or second is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "ModuleNotFound",
                "message": "One or both modules not found",
                "details": {"module_a": module_a, "module_b": module_b}
            }
        )

    return WorkflowInspector.get_module_compatibility(first, second)


@router.post(
    "/dependency-graph",
    summary="Describe where each step's inputs come from"
)
async def dependency_graph(request: StepsRequest, service: WorkflowService = Depends(get_service)) -> Dict[str, Any]:
    module_map = service.capability_registry().module_map()
    graph = WorkflowInspector.build_dependency_graph(request.steps, module_map)
    return {"dependencyGraph": [node.to_wire() for node in graph]}


@router.post(
    "/auto-connect",
    summary="Arrange modules into a validated step list"
)
async def auto_connect(request: ModuleIdsRequest, service: WorkflowService = Depends(get_service)) -> Dict[str, Any]:
    connected = WorkflowInspector.auto_connect(request.module_ids, service.capability_registry())
    return {
        "steps": [step.to_wire() for step in connected["steps"]],
        "validation": connected["validation"].to_wire(),
        "autoConnected": True,
    }


@router.post(
    "/data-flow",
    summary="Analyze data availability along a workflow"
)
async def data_flow(request: StepsRequest, service: WorkflowService = Depends(get_service)) -> Dict[str, Any]:
    return WorkflowInspector.analyze_data_flow(request.steps, service.capability_registry().module_map())


@router.post(
    "/auto-fix",
    summary="Insert human checkpoints into a workflow"
)
async def auto_fix(request: StepsRequest, service: WorkflowService = Depends(get_service)) -> Dict[str, Any]:
    """Add human-decision and human-manual-input steps where validation finds gaps, then re-validate."""
    result = service.auto_fix(request.steps)
    if result["changes"]:
        logger.info(f"Auto-fix applied {len(result['changes'])} changes")
    return result
