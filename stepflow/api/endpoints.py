"""FastAPI REST endpoints for modules, workflows and parallel execution."""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import Field, field_validator

from ..core.exceptions import WorkflowEngineError, create_error_response
from ..core.logging import get_logger
from ..core.middleware import get_status_code_for_error
from ..core.service import WorkflowService
from ..models.core import ExecutionRecord, ModuleDescriptor, Step, WireModel, Workflow
from ..storage.repositories import ExecutionStore, ModuleStore, WorkflowStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["workflow"])

# Global instances (initialized by the application factory)
_service: Optional[WorkflowService] = None
_workflow_store: Optional[WorkflowStore] = None
_module_store: Optional[ModuleStore] = None
_execution_store: Optional[ExecutionStore] = None


def init_dependencies(
    service: WorkflowService,
    workflow_store: WorkflowStore,
    module_store: ModuleStore,
    execution_store: ExecutionStore
):
    """Initialize the global dependencies."""
    global _service, _workflow_store, _module_store, _execution_store
    _service = service
    _workflow_store = workflow_store
    _module_store = module_store
    _execution_store = execution_store


def _require(instance, name: str):
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{name} not initialized"
        )
    return instance


def get_service() -> WorkflowService:
    """Dependency to get the workflow service."""
    return _require(_service, "Workflow service")


def get_workflow_store() -> WorkflowStore:
    """Dependency to get the workflow store."""
    return _require(_workflow_store, "Workflow store")


def get_module_store() -> ModuleStore:
    """Dependency to get the module store."""
    return _require(_module_store, "Module store")


def get_execution_store() -> ExecutionStore:
    """Dependency to get the execution store."""
    return _require(_execution_store, "Execution store")


def raise_http_error(error: WorkflowEngineError, action: str):
    """Translate an engine error into an HTTPException carrying the standard error body."""
    status_code = get_status_code_for_error(error)
    if status_code >= 500:
        logger.error(f"Error while {action}: {error.message}")
    else:
        logger.warning(f"Rejected request while {action}: {error.message}")
    raise HTTPException(status_code=status_code, detail=create_error_response(error))


# Request/Response models
class StepsRequest(WireModel):
    """Request body carrying an ad hoc step list."""
    steps: List[Step] = Field(..., description="Steps in list order")


class CreateWorkflowRequest(WireModel):
    """Request model for creating a workflow."""
    name: str = Field(..., description="Workflow name")
    description: str = Field("", description="Workflow description")
    steps: List[Step] = Field(default_factory=list, description="Steps in list order")

    @field_validator("name")
    @classmethod
    def validate_name(cls, name):
        if not name or not name.strip():
            raise ValueError("Workflow name cannot be empty")
        return name.strip()


class UpdateWorkflowRequest(WireModel):
    """Request model for updating a workflow; omitted fields stay unchanged."""
    name: Optional[str] = None
    description: Optional[str] = None
    steps: Optional[List[Step]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, name):
        if name is not None and not name.strip():
            raise ValueError("Workflow name cannot be empty")
        return name.strip() if name is not None else name


# Modules

@router.get(
    "/modules",
    response_model=List[ModuleDescriptor],
    summary="List modules",
    description="List every module in the catalogue with its data contract"
)
async def list_modules(module_store: ModuleStore = Depends(get_module_store)):
    try:
        return module_store.list()
    except WorkflowEngineError as e:
        raise_http_error(e, "listing modules")


@router.get(
    "/modules/{module_id}",
    response_model=ModuleDescriptor,
    summary="Get a module"
)
async def get_module(module_id: str, module_store: ModuleStore = Depends(get_module_store)):
    try:
        return module_store.get(module_id)
    except WorkflowEngineError as e:
        raise_http_error(e, f"fetching module {module_id}")


@router.post(
    "/modules",
    response_model=ModuleDescriptor,
    status_code=status.HTTP_201_CREATED,
    summary="Add or replace a module"
)
async def save_module(descriptor: ModuleDescriptor, module_store: ModuleStore = Depends(get_module_store)):
    """
    Add a module to the catalogue, replacing any module with the same id.

    The new contract applies to runs and validations started afterwards.
    """
    try:
        return module_store.save(descriptor)
    except WorkflowEngineError as e:
        raise_http_error(e, f"saving module {descriptor.id}")


# Workflows

@router.get(
    "/workflows",
    response_model=List[Workflow],
    summary="List workflows"
)
async def list_workflows(workflow_store: WorkflowStore = Depends(get_workflow_store)):
    try:
        return workflow_store.list()
    except WorkflowEngineError as e:
        raise_http_error(e, "listing workflows")


@router.post(
    "/workflows",
    response_model=Workflow,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow"
)
async def create_workflow(
    request: CreateWorkflowRequest,
    workflow_store: WorkflowStore = Depends(get_workflow_store)
):
    """
    Store a new workflow.

    Args:
        request: Name, description and steps of the workflow
        workflow_store: Workflow store dependency

    Returns:
        The stored workflow with its generated id
    """
    try:
        workflow = workflow_store.create(request.name, request.steps, request.description)
        logger.info(f"Created workflow '{workflow.name}' with ID: {workflow.id}")
        return workflow
    except WorkflowEngineError as e:
        raise_http_error(e, "creating workflow")


@router.get(
    "/workflows/{workflow_id}",
    response_model=Workflow,
    summary="Get a workflow"
)
async def get_workflow(workflow_id: str, workflow_store: WorkflowStore = Depends(get_workflow_store)):
    try:
        return workflow_store.get(workflow_id)
    except WorkflowEngineError as e:
        raise_http_error(e, f"fetching workflow {workflow_id}")


@router.put(
    "/workflows/{workflow_id}",
    response_model=Workflow,
    summary="Update a workflow"
)
async def update_workflow(
    workflow_id: str,
    request: UpdateWorkflowRequest,
    workflow_store: WorkflowStore = Depends(get_workflow_store)
):
    try:
        return workflow_store.update(
            workflow_id,
            name=request.name,
            steps=request.steps,
            description=request.description
        )
    except WorkflowEngineError as e:
        raise_http_error(e, f"updating workflow {workflow_id}")


@router.delete(
    "/workflows/{workflow_id}",
    summary="Delete a workflow"
)
async def delete_workflow(
    workflow_id: str,
    workflow_store: WorkflowStore = Depends(get_workflow_store)
) -> Dict[str, Any]:
    try:
        deleted = workflow_store.delete(workflow_id)
    except WorkflowEngineError as e:
        raise_http_error(e, f"deleting workflow {workflow_id}")

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "WorkflowNotFound",
                "message": f"Workflow with ID '{workflow_id}' not found",
                "details": {"workflow_id": workflow_id}
            }
        )
    return {"message": f"Workflow '{workflow_id}' deleted successfully", "workflowId": workflow_id}


# Parallel execution

@router.post(
    "/workflows/{workflow_id}/execute-parallel",
    summary="Execute a stored workflow in parallel",
    description="Run every step as soon as its dependencies have finished and wait for the whole run"
)
async def execute_workflow_parallel(
    workflow_id: str,
    workflow_store: WorkflowStore = Depends(get_workflow_store),
    service: WorkflowService = Depends(get_service)
) -> Dict[str, Any]:
    try:
        workflow = workflow_store.get(workflow_id)
        logger.info(f"Starting parallel execution for workflow: {workflow.id}")
        return await service.execute_parallel(workflow.steps, workflow_id=workflow.id)
    except WorkflowEngineError as e:
        raise_http_error(e, f"executing workflow {workflow_id}")


@router.get(
    "/workflows/{workflow_id}/analyze",
    summary="Analyze the parallelism of a stored workflow"
)
async def analyze_workflow(
    workflow_id: str,
    workflow_store: WorkflowStore = Depends(get_workflow_store),
    service: WorkflowService = Depends(get_service)
) -> Dict[str, Any]:
    try:
        workflow = workflow_store.get(workflow_id)
    except WorkflowEngineError as e:
        raise_http_error(e, f"analyzing workflow {workflow_id}")
    return {"workflowId": workflow.id, "analysis": service.analyze(workflow.steps)}


@router.get(
    "/workflows/{workflow_id}/executions",
    response_model=List[ExecutionRecord],
    summary="List the runs of a workflow"
)
async def list_workflow_executions(
    workflow_id: str,
    execution_store: ExecutionStore = Depends(get_execution_store)
):
    try:
        return execution_store.list(workflow_id=workflow_id)
    except WorkflowEngineError as e:
        raise_http_error(e, f"listing executions of workflow {workflow_id}")


@router.post(
    "/execute-parallel",
    summary="Execute an ad hoc step list in parallel"
)
async def execute_steps_parallel(
    request: StepsRequest,
    service: WorkflowService = Depends(get_service)
) -> Dict[str, Any]:
    try:
        return await service.execute_parallel(request.steps)
    except WorkflowEngineError as e:
        raise_http_error(e, "executing ad hoc steps")


@router.post(
    "/analyze",
    summary="Analyze the parallelism of an ad hoc step list"
)
async def analyze_steps(
    request: StepsRequest,
    service: WorkflowService = Depends(get_service)
) -> Dict[str, Any]:
    return {"analysis": service.analyze(request.steps)}


# Executions

@router.get(
    "/executions",
    response_model=List[ExecutionRecord],
    summary="List all runs"
)
async def list_executions(execution_store: ExecutionStore = Depends(get_execution_store)):
    try:
        return execution_store.list()
    except WorkflowEngineError as e:
        raise_http_error(e, "listing executions")


@router.get(
    "/executions/{execution_id}",
    response_model=ExecutionRecord,
    summary="Get a run"
)
async def get_execution(execution_id: str, execution_store: ExecutionStore = Depends(get_execution_store)):
    try:
        return execution_store.get(execution_id)
    except WorkflowEngineError as e:
        raise_http_error(e, f"fetching execution {execution_id}")


@router.post(
    "/executions/{execution_id}/cancel",
    summary="Cancel a run in flight"
)
async def cancel_execution(
    execution_id: str,
    service: WorkflowService = Depends(get_service)
) -> Dict[str, Any]:
    if not service.cancel_execution(execution_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "ExecutionNotActive",
                "message": f"No active execution with ID '{execution_id}'",
                "details": {"execution_id": execution_id}
            }
        )
    return {"message": f"Cancellation requested for execution '{execution_id}'", "executionId": execution_id}
