"""Pytest configuration and fixtures."""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from stepflow.config import get_testing_config, reset_config
from stepflow.core.capability_registry import CapabilityRegistry
from stepflow.core.executor_registry import ExecutorRegistry
from stepflow.factory import create_app
from stepflow.models.core import Step
from stepflow.modules import default_modules, register_default_executors
from stepflow.storage.database import create_tables, get_database_engine, reset_database_engine


def make_step(instance_id: str, module_id: str, depends_on: Optional[List[str]] = None, **kwargs) -> Step:
    """Shorthand for building a step."""
    return Step(instance_id=instance_id, module_id=module_id, depends_on=depends_on or [], **kwargs)


def sequential_ids():
    """Id factory producing predictable instance ids: ``<prefix>-1``, ``<prefix>-2``..."""
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


def product_source(config: Dict[str, Any], input_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Test executor producing a fixed product list."""
    return {"products": [{"name": config.get("name", "widget"), "price": 10}], "source": config.get("name", "widget")}


async def echo_input(config: Dict[str, Any], input_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Test executor returning what it received."""
    await asyncio.sleep(0)
    return {"received": input_data, "config": config}


@pytest.fixture
def temp_db(tmp_path):
    """Bind the storage layer to a fresh sqlite file."""
    reset_database_engine()
    get_database_engine(f"sqlite:///{tmp_path / 'stepflow-test.db'}")
    create_tables()

    yield tmp_path

    reset_database_engine()


@pytest.fixture
def capabilities() -> CapabilityRegistry:
    """Capability registry over the default module catalogue."""
    return CapabilityRegistry(default_modules())


@pytest.fixture
def executor_registry() -> ExecutorRegistry:
    """Executor registry with the built-in human executors bound."""
    return register_default_executors(ExecutorRegistry())


@pytest.fixture
def id_factory():
    return sequential_ids()


@pytest.fixture
def test_config(tmp_path):
    """Testing configuration backed by a temporary sqlite file."""
    config = get_testing_config()
    config.database_url = f"sqlite:///{tmp_path / 'stepflow-api.db'}"
    config.enable_performance_monitoring = True
    return config


@pytest.fixture
def app_client(test_config):
    """FastAPI test client over a fully initialised application."""
    registry = ExecutorRegistry()
    registry.register_executor("ecommerce-scraper", product_source, "Fixed product list")
    registry.register_executor("product-info", echo_input, "Echo the merged input")

    app = create_app(test_config, executor_registry=registry)
    with TestClient(app) as client:
        yield client

    reset_database_engine()
    reset_config()
