"""Core Pydantic models for the workflow engine."""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


Scalar = Union[str, int, float, bool]


class WireModel(BaseModel):
    """Base model that speaks the camelCase wire names and accepts snake_case too."""
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump the model using its wire (alias) field names."""
        return self.model_dump(by_alias=True, mode="json")


class DataTypeEnum(str, Enum):
    """Closed vocabulary of payload types passed between modules."""
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    QUOTES = "quotes"
    EMAILS = "emails"
    ANALYTICS = "analytics"
    REPORTS = "reports"
    APPROVAL = "approval"
    PRICING = "pricing"
    SYNC_DATA = "sync_data"


class ModuleCategory(str, Enum):
    """Functional category of a module."""
    DATA_COLLECTION = "data_collection"
    PROCESSING = "processing"
    COMMUNICATION = "communication"
    ANALYSIS = "analysis"
    DECISION = "decision"
    INTEGRATION = "integration"


class NodeStatusEnum(str, Enum):
    """Lifecycle of a step inside a single execution run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExecutionStatusEnum(str, Enum):
    """Overall outcome of a run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FailurePolicy(str, Enum):
    """What happens to dependents of a failed step."""
    CONTINUE = "continue"
    SKIP_DEPENDENTS = "skip_dependents"


class DataPort(WireModel):
    """A declared input or output of a module."""
    data_type: DataTypeEnum = Field(..., alias="type", description="Payload type")
    required: bool = Field(False, description="Whether the input must be satisfied")
    data_schema: Optional[Dict[str, str]] = Field(None, alias="schema", description="Informal field schema")


class ConfigField(WireModel):
    """Describes one configuration field a module accepts."""
    name: str
    label: str
    type: str = Field("text", description="text, textarea or number")
    placeholder: Optional[str] = None

    @field_validator('type')
    @classmethod
    def validate_type(cls, value):
        """Ensure the field type is one of the supported widgets."""
        if value not in ("text", "textarea", "number"):
            raise ValueError("Config field type must be one of: text, textarea, number")
        return value


class ModuleDescriptor(WireModel):
    """Capability declaration of a module: category plus input/output contract."""
    id: str = Field(..., description="Unique module identifier")
    name: str = Field(..., description="Human readable module name")
    description: str = Field("", description="What the module does")
    category: ModuleCategory = Field(..., description="Functional category")
    inputs: List[DataPort] = Field(default_factory=list, description="Declared inputs")
    outputs: List[DataPort] = Field(default_factory=list, description="Declared outputs")
    config_fields: List[ConfigField] = Field(default_factory=list, alias="configFields")
    is_llm_powered: bool = Field(False, alias="isLLMPowered")

    @field_validator('id', 'name')
    @classmethod
    def validate_not_empty(cls, value):
        """Ensure identifiers are not blank."""
        if not value or not value.strip():
            raise ValueError("Module id and name cannot be empty")
        return value.strip()

    def input_types(self) -> List[str]:
        return [port.data_type.value for port in self.inputs]

    def output_types(self) -> List[str]:
        return [port.data_type.value for port in self.outputs]


class Step(WireModel):
    """One module instance placed in a workflow."""
    instance_id: str = Field(..., alias="instanceId", description="Unique id of the step in the workflow")
    module_id: str = Field(..., alias="moduleId", description="Module the step runs")
    config: Dict[str, Scalar] = Field(default_factory=dict, description="Module configuration")
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn", description="Steps that must finish first")
    llm: Optional[str] = Field(None, description="Preferred language model for LLM-backed modules")
    timeout: Optional[float] = Field(None, description="Timeout in seconds for this step")

    @field_validator('instance_id', 'module_id')
    @classmethod
    def validate_ids(cls, value):
        """Ensure ids are non-empty and free of whitespace."""
        if not value or not value.strip():
            raise ValueError("Step ids cannot be empty")
        if re.search(r'\s', value.strip()):
            raise ValueError("Step ids cannot contain whitespace")
        return value.strip()

    @field_validator('depends_on')
    @classmethod
    def dedupe_dependencies(cls, depends_on):
        """Treat dependsOn as an ordered set."""
        seen = []
        for dep_id in depends_on:
            dep_id = dep_id.strip()
            if dep_id and dep_id not in seen:
                seen.append(dep_id)
        return seen

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, timeout):
        """Ensure timeout is positive if specified."""
        if timeout is not None and timeout <= 0:
            raise ValueError("Timeout must be positive")
        return timeout


class ExecutionStats(WireModel):
    """Progress counters of a run."""
    total: int
    completed: int
    running: int
    pending: int


class ParallelismAnalysis(WireModel):
    """Topological levels of a step list."""
    max_parallelism: int = Field(..., alias="maxParallelism")
    levels: List[List[str]] = Field(default_factory=list)
    independent_paths: int = Field(..., alias="independentPaths")


class ModuleConnection(WireModel):
    """Suggested data-flow edge between two modules."""
    from_module: str = Field(..., alias="fromModule")
    to_module: str = Field(..., alias="toModule")
    data_type: str = Field(..., alias="dataType")
    confidence: float = Field(..., ge=0.0, le=1.0)


class DependencyNode(WireModel):
    """Where each input of a step comes from."""
    module_id: str = Field(..., alias="moduleId")
    level: int
    dependencies: List[str] = Field(default_factory=list)
    outputs: List[DataPort] = Field(default_factory=list)


class ValidationResult(WireModel):
    """Result of static workflow validation."""
    is_valid: bool = Field(..., alias="isValid", description="Whether the workflow is valid")
    errors: List[str] = Field(default_factory=list, description="List of validation errors")
    warnings: List[str] = Field(default_factory=list, description="List of validation warnings")
    suggested_connections: List[ModuleConnection] = Field(default_factory=list, alias="suggestedConnections")
    dependency_graph: List[DependencyNode] = Field(default_factory=list, alias="dependencyGraph")


class CompatibilityResult(WireModel):
    """How well one module feeds another."""
    compatible: bool
    score: float
    reasons: List[str] = Field(default_factory=list)


class OrderSuggestion(WireModel):
    """Category-based module ordering."""
    order: List[str] = Field(default_factory=list)
    reasoning: List[str] = Field(default_factory=list)


class AutoFixResult(WireModel):
    """Output of one remediation pass."""
    fixed_steps: List[Step] = Field(default_factory=list, alias="fixedSteps")
    changes: List[str] = Field(default_factory=list)


class Workflow(WireModel):
    """A named, stored step list."""
    id: str
    name: str
    description: str = ""
    steps: List[Step] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator('name')
    @classmethod
    def validate_name_not_empty(cls, name):
        """Ensure workflow name is not empty."""
        if not name or not name.strip():
            raise ValueError("Workflow name cannot be empty")
        return name.strip()


class ExecutionRecord(WireModel):
    """Stored outcome of a parallel run."""
    id: str
    workflow_id: Optional[str] = Field(None, alias="workflowId")
    status: ExecutionStatusEnum
    results: Dict[str, Any] = Field(default_factory=dict)
    stats: Optional[ExecutionStats] = None
    parallelism: Optional[ParallelismAnalysis] = None
    duration_ms: Optional[float] = Field(None, alias="durationMs")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    started_at: datetime = Field(..., alias="startedAt")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")
