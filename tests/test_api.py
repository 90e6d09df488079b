"""API tests for the workflow service over HTTP."""

from stepflow.factory import get_app_state

CATALOGUE_STEPS = [
    {"instanceId": "scrape", "moduleId": "ecommerce-scraper", "config": {"name": "lamp"}},
    {"instanceId": "info", "moduleId": "product-info", "dependsOn": ["scrape"]},
    {"instanceId": "chat", "moduleId": "web-chatbot", "dependsOn": ["scrape"]},
    {"instanceId": "quote", "moduleId": "quotation", "dependsOn": ["info", "chat"]},
]


def create_workflow(client, steps=None, name="Quote pipeline"):
    response = client.post("/api/v1/workflows", json={
        "name": name,
        "description": "Scrape, enrich and quote",
        "steps": CATALOGUE_STEPS if steps is None else steps,
    })
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoints:
    """Test cases for the health endpoints."""

    def test_root(self, app_client):
        response = app_client.get("/")

        assert response.status_code == 200
        assert "is running" in response.json()["message"]

    def test_health(self, app_client):
        response = app_client.get("/health")

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["modules"] == 11
        assert data["executors"] == 4
        assert data["activeExecutions"] == 0

    def test_middleware_headers(self, app_client):
        response = app_client.get("/health")

        assert "X-Request-ID" in response.headers
        assert response.headers["X-Response-Time"].endswith("s")


class TestModuleEndpoints:
    """Test cases for the module catalogue endpoints."""

    def test_list_modules(self, app_client):
        response = app_client.get("/api/v1/modules")

        modules = response.json()
        assert response.status_code == 200
        assert len(modules) == 11
        quotation = next(module for module in modules if module["id"] == "quotation")
        assert quotation["isLLMPowered"] is True
        assert quotation["inputs"][0] == {"type": "products", "required": True, "schema": None}

    def test_get_missing_module(self, app_client):
        response = app_client.get("/api/v1/modules/ghost")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "StorageError"

    def test_save_module_extends_catalogue(self, app_client):
        response = app_client.post("/api/v1/modules", json={
            "id": "lead-scorer",
            "name": "Lead Scorer",
            "category": "analysis",
            "inputs": [{"type": "customers", "required": True}],
            "outputs": [{"type": "analytics"}],
        })
        assert response.status_code == 201

        validation = app_client.post("/api/v1/inspector/validate", json={"steps": [
            {"instanceId": "bot", "moduleId": "web-chatbot"},
            {"instanceId": "score", "moduleId": "lead-scorer"},
        ]}).json()

        assert validation["isValid"] is True

    def test_invalid_module_rejected(self, app_client):
        response = app_client.post("/api/v1/modules", json={"id": "bad", "name": "Bad", "category": "unknown"})

        assert response.status_code == 422


class TestWorkflowEndpoints:
    """Test cases for workflow CRUD."""

    def test_crud(self, app_client):
        workflow = create_workflow(app_client)
        workflow_id = workflow["id"]

        assert workflow["steps"][1]["dependsOn"] == ["scrape"]

        fetched = app_client.get(f"/api/v1/workflows/{workflow_id}").json()
        assert fetched["name"] == "Quote pipeline"

        updated = app_client.put(f"/api/v1/workflows/{workflow_id}", json={"name": "Renamed"}).json()
        assert updated["name"] == "Renamed"
        assert len(updated["steps"]) == 4

        assert len(app_client.get("/api/v1/workflows").json()) == 1

        deleted = app_client.delete(f"/api/v1/workflows/{workflow_id}")
        assert deleted.status_code == 200
        assert deleted.json()["workflowId"] == workflow_id

        missing = app_client.delete(f"/api/v1/workflows/{workflow_id}")
        assert missing.status_code == 404
        assert missing.json()["detail"]["error"] == "WorkflowNotFound"

    def test_get_missing_workflow(self, app_client):
        response = app_client.get("/api/v1/workflows/ghost")

        assert response.status_code == 404
        assert response.json()["detail"]["message"] == "Workflow with ID 'ghost' not found"

    def test_blank_name_rejected(self, app_client):
        assert app_client.post("/api/v1/workflows", json={"name": "  ", "steps": []}).status_code == 422

    def test_self_dependent_workflow_deadlocks(self, app_client):
        workflow = create_workflow(
            app_client,
            steps=[{"instanceId": "a", "moduleId": "quotation", "dependsOn": ["a"]}],
            name="Self loop",
        )

        response = app_client.post(f"/api/v1/workflows/{workflow['id']}/execute-parallel")

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "DeadlockError"


class TestExecutionEndpoints:
    """Test cases for parallel execution and run records."""

    def test_execute_stored_workflow(self, app_client):
        workflow_id = create_workflow(app_client)["id"]

        response = app_client.post(f"/api/v1/workflows/{workflow_id}/execute-parallel")

        report = response.json()
        assert response.status_code == 200
        assert report["status"] == "completed"
        assert report["workflowId"] == workflow_id
        assert report["parallelism"]["levels"] == [["scrape"], ["info", "chat"], ["quote"]]
        assert report["results"]["scrape"]["products"] == [{"name": "lamp", "price": 10}]
        assert report["results"]["info"]["received"]["source"] == "lamp"
        assert report["results"]["quote"]["output"] == "Simulated output from New and Revised Quotation"

        runs = app_client.get(f"/api/v1/workflows/{workflow_id}/executions").json()
        assert [run["id"] for run in runs] == [report["executionId"]]

        run = app_client.get(f"/api/v1/executions/{report['executionId']}").json()
        assert run["status"] == "completed"
        assert run["stats"]["completed"] == 4
        assert run["results"]["scrape"]["source"] == "lamp"

    def test_execute_missing_workflow(self, app_client):
        response = app_client.post("/api/v1/workflows/ghost/execute-parallel")

        assert response.status_code == 404

    def test_execute_ad_hoc_steps(self, app_client):
        response = app_client.post("/api/v1/execute-parallel", json={"steps": [
            {"instanceId": "a", "moduleId": "human-manual-input", "config": {"requiredFields": "name, email"}},
            {"instanceId": "b", "moduleId": "human-decision", "dependsOn": ["a"]},
        ]})

        report = response.json()
        assert response.status_code == 200
        assert report["workflowId"] is None
        assert report["results"]["a"]["requiredFields"] == ["name", "email"]
        assert report["results"]["b"]["status"] == "pending_approval"

    def test_deadlock_is_a_conflict(self, app_client):
        response = app_client.post("/api/v1/execute-parallel", json={"steps": [
            {"instanceId": "a", "moduleId": "human-decision", "dependsOn": ["b"]},
            {"instanceId": "b", "moduleId": "human-decision", "dependsOn": ["a"]},
        ]})

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "DeadlockError"

        runs = app_client.get("/api/v1/executions").json()
        assert [run["status"] for run in runs] == ["failed"]

    def test_duplicate_ids_are_rejected(self, app_client):
        response = app_client.post("/api/v1/execute-parallel", json={"steps": [
            {"instanceId": "a", "moduleId": "human-decision"},
            {"instanceId": "a", "moduleId": "human-decision"},
        ]})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "GraphValidationError"

    def test_analyze(self, app_client):
        workflow_id = create_workflow(app_client)["id"]

        stored = app_client.get(f"/api/v1/workflows/{workflow_id}/analyze").json()
        assert stored["workflowId"] == workflow_id
        assert stored["analysis"]["maxParallelism"] == 2
        assert stored["analysis"]["estimatedSpeedup"] == "2x (theoretical maximum)"

        ad_hoc = app_client.post("/api/v1/analyze", json={"steps": CATALOGUE_STEPS}).json()
        assert ad_hoc["analysis"] == stored["analysis"]

    def test_cancel_inactive_execution(self, app_client):
        response = app_client.post("/api/v1/executions/ghost/cancel")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "ExecutionNotActive"

    def test_get_missing_execution(self, app_client):
        assert app_client.get("/api/v1/executions/ghost").status_code == 404


class TestInspectorEndpoints:
    """Test cases for the inspector endpoints."""

    def test_validate(self, app_client):
        response = app_client.post("/api/v1/inspector/validate", json={"steps": [
            {"instanceId": "q", "moduleId": "quotation"},
        ]})

        data = response.json()
        assert response.status_code == 200
        assert data["isValid"] is False
        assert "Step 1: Missing required input 'products' for module 'New and Revised Quotation'" in data["errors"]

    def test_suggest_order(self, app_client):
        response = app_client.post("/api/v1/inspector/suggest-order", json={
            "moduleIds": ["sales-analysis", "ecommerce-scraper"],
        })

        assert response.json()["order"] == ["ecommerce-scraper", "sales-analysis"]

    def test_compatibility(self, app_client):
        response = app_client.get("/api/v1/inspector/compatibility/ecommerce-scraper/product-info")

        assert response.json()["compatible"] is True

        missing = app_client.get("/api/v1/inspector/compatibility/ecommerce-scraper/ghost")
        assert missing.status_code == 404
        assert missing.json()["detail"]["error"] == "ModuleNotFound"

    def test_dependency_graph(self, app_client):
        response = app_client.post("/api/v1/inspector/dependency-graph", json={"steps": CATALOGUE_STEPS})

        graph = response.json()["dependencyGraph"]
        assert [node["moduleId"] for node in graph] == [
            "ecommerce-scraper", "product-info", "web-chatbot", "quotation",
        ]
        assert graph[3]["dependencies"] == ["products from step 1", "customers from step 2"]

    def test_auto_connect(self, app_client):
        response = app_client.post("/api/v1/inspector/auto-connect", json={
            "moduleIds": ["quotation", "ecommerce-scraper"],
        })

        data = response.json()
        assert data["autoConnected"] is True
        assert [step["moduleId"] for step in data["steps"]] == ["ecommerce-scraper", "quotation"]
        assert data["validation"]["isValid"] is True

    def test_data_flow(self, app_client):
        response = app_client.post("/api/v1/inspector/data-flow", json={"steps": [
            {"instanceId": "q", "moduleId": "quotation"},
        ]})

        assert response.json()["bottlenecks"] == [
            "Step 1 (New and Revised Quotation): Missing required data - products",
        ]

    def test_auto_fix(self, app_client):
        response = app_client.post("/api/v1/inspector/auto-fix", json={"steps": [
            {"instanceId": "q", "moduleId": "quotation"},
            {"instanceId": "a", "moduleId": "sales-analysis", "dependsOn": ["q"]},
        ]})

        data = response.json()
        assert data["autoFixed"] is True
        assert len(data["changes"]) == 3
        assert data["validation"]["isValid"] is True
        assert [step["moduleId"] for step in data["originalSteps"]] == ["quotation", "sales-analysis"]


def test_app_state_is_initialised(app_client):
    state = get_app_state()

    assert state.service is not None
    assert state.config.simulate_missing_executors is True
    assert state.executor_registry.has_executor("human-decision")
