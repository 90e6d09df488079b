"""Tests for the workflow, module and execution stores."""

from datetime import datetime

import pytest

from conftest import make_step
from stepflow.core.exceptions import StorageError
from stepflow.models.core import (
    ExecutionRecord,
    ExecutionStats,
    ExecutionStatusEnum,
    ModuleCategory,
    ModuleDescriptor,
    ParallelismAnalysis,
)
from stepflow.modules import default_modules
from stepflow.storage.repositories import ExecutionStore, ModuleStore, WorkflowStore


class TestWorkflowStore:
    """Test cases for WorkflowStore."""

    def test_create_and_get(self, temp_db):
        store = WorkflowStore()
        steps = [
            make_step("scrape", "ecommerce-scraper", config={"url": "https://shop.example"}),
            make_step("info", "product-info", ["scrape"], llm="default", timeout=30),
        ]

        created = store.create("Catalogue sync", steps, "Nightly run")
        fetched = store.get(created.id)

        assert fetched.name == "Catalogue sync"
        assert fetched.description == "Nightly run"
        assert fetched.steps == steps
        assert fetched.created_at is not None

    def test_missing_workflow(self, temp_db):
        with pytest.raises(StorageError) as exc_info:
            WorkflowStore().get("nope")

        assert exc_info.value.message == "Workflow with ID 'nope' not found"

    def test_update_changes_only_given_fields(self, temp_db):
        store = WorkflowStore()
        created = store.create("Original", [make_step("a", "quotation")], "Keep me")

        updated = store.update(created.id, name="Renamed")

        assert updated.name == "Renamed"
        assert updated.description == "Keep me"
        assert [step.instance_id for step in updated.steps] == ["a"]

        updated = store.update(created.id, steps=[])
        assert updated.steps == []

    def test_list_and_delete(self, temp_db):
        store = WorkflowStore()
        first = store.create("First", [])
        store.create("Second", [])

        assert {workflow.name for workflow in store.list()} == {"First", "Second"}

        assert store.delete(first.id)
        assert not store.delete(first.id)
        assert [workflow.name for workflow in store.list()] == ["Second"]


class TestModuleStore:
    """Test cases for ModuleStore."""

    def test_seed_only_when_empty(self, temp_db):
        store = ModuleStore()

        assert store.seed(default_modules()) == len(default_modules())
        assert store.seed(default_modules()) == 0
        assert store.count() == len(default_modules())

    def test_round_trip_keeps_contract(self, temp_db):
        store = ModuleStore()
        store.seed(default_modules())

        quotation = store.get("quotation")

        assert quotation.input_types() == ["products", "customers"]
        assert quotation.inputs[0].required
        assert quotation.is_llm_powered

    def test_save_replaces_existing(self, temp_db):
        store = ModuleStore()
        store.save(ModuleDescriptor(id="custom", name="Custom", category=ModuleCategory.PROCESSING))
        store.save(ModuleDescriptor(id="custom", name="Custom v2", category=ModuleCategory.ANALYSIS))

        assert store.count() == 1
        assert store.get("custom").name == "Custom v2"
        assert store.get("custom").category == ModuleCategory.ANALYSIS

    def test_missing_module(self, temp_db):
        with pytest.raises(StorageError) as exc_info:
            ModuleStore().get("ghost")

        assert "not found" in exc_info.value.message


class TestExecutionStore:
    """Test cases for ExecutionStore."""

    def make_record(self, execution_id="run-1", workflow_id=None):
        return ExecutionRecord(
            id=execution_id,
            workflow_id=workflow_id,
            status=ExecutionStatusEnum.RUNNING,
            stats=ExecutionStats(total=2, completed=0, running=0, pending=2),
            parallelism=ParallelismAnalysis(max_parallelism=2, levels=[["a", "b"]], independent_paths=2),
            started_at=datetime.utcnow(),
        )

    def test_create_and_update(self, temp_db):
        store = ExecutionStore()
        store.create(self.make_record())

        updated = store.update(
            "run-1",
            status=ExecutionStatusEnum.PARTIAL,
            results={"a": {"status": "error", "error": "boom"}, "b": {"ok": True}},
            stats=ExecutionStats(total=2, completed=2, running=0, pending=0),
            duration_ms=12.5,
            completed_at=datetime.utcnow(),
        )

        assert updated.status == ExecutionStatusEnum.PARTIAL
        assert updated.results["a"]["error"] == "boom"
        assert updated.stats.completed == 2
        assert updated.parallelism.levels == [["a", "b"]]
        assert updated.duration_ms == 12.5

        fetched = store.get("run-1")
        assert fetched.completed_at is not None
        assert fetched.to_wire()["durationMs"] == 12.5

    def test_list_by_workflow_and_summary(self, temp_db):
        workflow = WorkflowStore().create("With runs", [])
        store = ExecutionStore()
        store.create(self.make_record("run-1", workflow.id))
        store.create(self.make_record("run-2"))
        store.update("run-2", status=ExecutionStatusEnum.COMPLETED)

        assert [record.id for record in store.list(workflow_id=workflow.id)] == ["run-1"]
        assert len(store.list()) == 2
        assert store.summary() == {"running": 1, "completed": 1}

    def test_missing_execution(self, temp_db):
        with pytest.raises(StorageError):
            ExecutionStore().update("ghost", status=ExecutionStatusEnum.FAILED)
