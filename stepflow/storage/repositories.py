"""Record stores for workflows, the module catalogue and execution runs."""

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import StorageError
from ..core.logging import get_logger
from ..models.core import ExecutionRecord, ModuleDescriptor, Step, Workflow
from .database import get_session
from .models import ExecutionModel, ModuleModel, WorkflowModel

logger = get_logger(__name__)


class _Store:
    """Shared session handling: use the injected session or open one per call."""

    table: str = ""

    def __init__(self, db_session: Optional[Session] = None):
        self._db_session = db_session

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        if self._db_session is not None:
            db = self._db_session
            owned = False
        else:
            db = get_session()
            owned = True
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error during {operation} on {self.table}: {str(e)}")
            raise StorageError(
                f"Failed to {operation} {self.table}: {str(e)}",
                operation=operation,
                table=self.table
            ) from e
        finally:
            if owned:
                db.close()

    def _not_found(self, record_id: str, operation: str) -> StorageError:
        return StorageError(
            f"{self.table[:-1].capitalize()} with ID '{record_id}' not found",
            operation=operation,
            table=self.table
        )


class WorkflowStore(_Store):
    """CRUD for stored workflows."""

    table = "workflows"

    @staticmethod
    def _to_workflow(model: WorkflowModel) -> Workflow:
        return Workflow(
            id=model.id,
            name=model.name,
            description=model.description or "",
            steps=[Step.model_validate(step) for step in (model.steps or [])],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def create(self, name: str, steps: Sequence[Step], description: str = "") -> Workflow:
        """
        Store a new workflow.

        Args:
            name: Workflow name
            steps: Step list
            description: Optional description

        Returns:
            Workflow: The stored workflow with its generated id

        Raises:
            StorageError: If the storage operation fails
        """
        workflow_id = str(uuid.uuid4())
        logger.info(f"Creating workflow '{name}' with {len(steps)} steps")

        with self._session("create") as db:
            model = WorkflowModel(
                id=workflow_id,
                name=name,
                description=description,
                steps=[step.to_wire() for step in steps],
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow(),
            )
            db.add(model)
            db.commit()
            db.refresh(model)
            return self._to_workflow(model)

    def get(self, workflow_id: str) -> Workflow:
        """
        Retrieve a workflow by id.

        Raises:
            StorageError: If the workflow is not found or storage fails
        """
        with self._session("get") as db:
            model = db.get(WorkflowModel, workflow_id)
            if model is None:
                raise self._not_found(workflow_id, "get")
            return self._to_workflow(model)

    def list(self) -> List[Workflow]:
        with self._session("list") as db:
            models = db.query(WorkflowModel).order_by(WorkflowModel.created_at.desc()).all()
            return [self._to_workflow(model) for model in models]

    def update(
        self,
        workflow_id: str,
        name: Optional[str] = None,
        steps: Optional[Sequence[Step]] = None,
        description: Optional[str] = None
    ) -> Workflow:
        """Update the given fields of a workflow; omitted fields stay unchanged."""
        with self._session("update") as db:
            model = db.get(WorkflowModel, workflow_id)
            if model is None:
                raise self._not_found(workflow_id, "update")

            if name is not None:
                model.name = name
            if description is not None:
                model.description = description
            if steps is not None:
                model.steps = [step.to_wire() for step in steps]
            model.updated_at = datetime.utcnow()

            db.commit()
            db.refresh(model)
            logger.info(f"Updated workflow {workflow_id}")
            return self._to_workflow(model)

    def delete(self, workflow_id: str) -> bool:
        """Delete a workflow and its runs. Returns False if it did not exist."""
        with self._session("delete") as db:
            model = db.get(WorkflowModel, workflow_id)
            if model is None:
                logger.warning(f"Workflow with ID '{workflow_id}' not found for deletion")
                return False
            db.delete(model)
            db.commit()
            logger.info(f"Deleted workflow {workflow_id}")
            return True


class ModuleStore(_Store):
    """Persistent module catalogue."""

    table = "modules"

    def list(self) -> List[ModuleDescriptor]:
        with self._session("list") as db:
            models = db.query(ModuleModel).order_by(ModuleModel.created_at, ModuleModel.id).all()
            return [ModuleDescriptor.model_validate(model.descriptor) for model in models]

    def get(self, module_id: str) -> ModuleDescriptor:
        """
        Retrieve a module descriptor.

        Raises:
            StorageError: If the module is not found or storage fails
        """
        with self._session("get") as db:
            model = db.get(ModuleModel, module_id)
            if model is None:
                raise self._not_found(module_id, "get")
            return ModuleDescriptor.model_validate(model.descriptor)

    def save(self, descriptor: ModuleDescriptor) -> ModuleDescriptor:
        """Insert or replace a module descriptor."""
        with self._session("save") as db:
            model = db.get(ModuleModel, descriptor.id)
            if model is None:
                model = ModuleModel(id=descriptor.id, created_at=datetime.utcnow())
                db.add(model)
            model.name = descriptor.name
            model.category = descriptor.category.value
            model.descriptor = descriptor.to_wire()
            model.updated_at = datetime.utcnow()
            db.commit()
            logger.info(f"Saved module '{descriptor.id}'")
            return descriptor

    def count(self) -> int:
        with self._session("count") as db:
            return db.query(ModuleModel).count()

    def seed(self, descriptors: Iterable[ModuleDescriptor]) -> int:
        """Store the given descriptors when the catalogue is empty. Returns how many were added."""
        if self.count() > 0:
            logger.info("Module catalogue already initialised, skipping seeding")
            return 0

        added = 0
        for descriptor in descriptors:
            self.save(descriptor)
            added += 1
        logger.info(f"Seeded module catalogue with {added} modules")
        return added


class ExecutionStore(_Store):
    """Stored outcomes of parallel runs."""

    table = "executions"

    @staticmethod
    def _to_record(model: ExecutionModel) -> ExecutionRecord:
        return ExecutionRecord(
            id=model.id,
            workflow_id=model.workflow_id,
            status=model.status,
            results=model.results or {},
            stats=model.stats,
            parallelism=model.parallelism,
            duration_ms=model.duration_ms,
            error_message=model.error_message,
            started_at=model.started_at,
            completed_at=model.completed_at,
        )

    def create(self, record: ExecutionRecord) -> ExecutionRecord:
        with self._session("create") as db:
            wire = record.model_dump(mode="json")
            db.add(ExecutionModel(
                id=record.id,
                workflow_id=record.workflow_id,
                status=record.status.value,
                results=wire["results"],
                stats=wire["stats"],
                parallelism=wire["parallelism"],
                duration_ms=record.duration_ms,
                error_message=record.error_message,
                started_at=record.started_at,
                completed_at=record.completed_at,
            ))
            db.commit()
            logger.debug(f"Stored execution {record.id} ({record.status.value})")
            return record

    def update(self, execution_id: str, **fields: Any) -> ExecutionRecord:
        """Overwrite fields of a stored run (snake_case ExecutionRecord names)."""
        with self._session("update") as db:
            model = db.get(ExecutionModel, execution_id)
            if model is None:
                raise self._not_found(execution_id, "update")

            current = self._to_record(model)
            updated = current.model_copy(update=fields)
            wire = ExecutionRecord.model_validate(updated.model_dump()).model_dump(mode="json")

            model.status = wire["status"]
            model.results = wire["results"]
            model.stats = wire["stats"]
            model.parallelism = wire["parallelism"]
            model.duration_ms = updated.duration_ms
            model.error_message = updated.error_message
            model.completed_at = updated.completed_at

            db.commit()
            db.refresh(model)
            return self._to_record(model)

    def get(self, execution_id: str) -> ExecutionRecord:
        """
        Retrieve a run by id.

        Raises:
            StorageError: If the run is not found or storage fails
        """
        with self._session("get") as db:
            model = db.get(ExecutionModel, execution_id)
            if model is None:
                raise self._not_found(execution_id, "get")
            return self._to_record(model)

    def list(self, workflow_id: Optional[str] = None) -> List[ExecutionRecord]:
        with self._session("list") as db:
            query = db.query(ExecutionModel)
            if workflow_id is not None:
                query = query.filter(ExecutionModel.workflow_id == workflow_id)
            models = query.order_by(ExecutionModel.started_at.desc()).all()
            return [self._to_record(model) for model in models]

    def summary(self) -> Dict[str, int]:
        """Number of stored runs per status."""
        counts: Dict[str, int] = {}
        for record in self.list():
            counts[record.status.value] = counts.get(record.status.value, 0) + 1
        return counts
