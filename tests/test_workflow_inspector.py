"""Tests for static workflow validation and data-flow inspection."""

import re

from conftest import make_step, sequential_ids
from stepflow.core.workflow_inspector import ORDER_REASONING, WorkflowInspector, new_instance_id


def steps_for(*module_ids):
    return [make_step(f"s{index}", module_id) for index, module_id in enumerate(module_ids, start=1)]


class TestValidateWorkflow:
    """Test cases for validate_workflow."""

    def test_valid_workflow_with_optional_warning(self, capabilities):
        result = WorkflowInspector.validate_workflow(
            steps_for("ecommerce-scraper", "product-info", "quotation"), capabilities
        )

        assert result.is_valid
        assert result.errors == []
        assert "Step 3: Optional input 'customers' not available for module 'New and Revised Quotation'" in result.warnings

    def test_missing_required_input(self, capabilities):
        result = WorkflowInspector.validate_workflow(steps_for("quotation"), capabilities)

        assert not result.is_valid
        assert result.errors == [
            "Step 1: Missing required input 'products' for module 'New and Revised Quotation'",
            "Step 1: No previous step provides required 'products' for 'New and Revised Quotation'",
        ]

    def test_reorder_hint_when_produced_later(self, capabilities):
        result = WorkflowInspector.validate_workflow(
            steps_for("product-info", "ecommerce-scraper"), capabilities
        )

        assert (
            "Step 1: No previous step provides required 'products' for 'Product Information' "
            "(produced later in the workflow; consider reordering)"
        ) in result.errors

    def test_unknown_module_is_an_error(self, capabilities):
        result = WorkflowInspector.validate_workflow(steps_for("ecommerce-scraper", "ghost"), capabilities)

        assert not result.is_valid
        assert result.errors == ["Step 2: Module 'ghost' not found"]

    def test_empty_workflow_is_valid(self, capabilities):
        result = WorkflowInspector.validate_workflow([], capabilities)

        assert result.is_valid
        assert result.errors == []
        assert result.dependency_graph == []

    def test_depends_on_is_ignored(self, capabilities):
        steps = [
            make_step("a", "product-info", ["b"]),
            make_step("b", "ecommerce-scraper"),
        ]

        result = WorkflowInspector.validate_workflow(steps, capabilities)

        assert not result.is_valid

    def test_accepts_plain_descriptor_list(self):
        from stepflow.modules import default_modules

        result = WorkflowInspector.validate_workflow(steps_for("ecommerce-scraper"), default_modules())

        assert result.is_valid

    def test_wire_format(self, capabilities):
        wire = WorkflowInspector.validate_workflow(steps_for("quotation"), capabilities).to_wire()

        assert set(wire) == {"isValid", "errors", "warnings", "suggestedConnections", "dependencyGraph"}
        assert wire["isValid"] is False


class TestHumanInterventionSuggestions:
    """Test cases for human checkpoint suggestions."""

    def test_missing_data_suggestions(self, capabilities):
        result = WorkflowInspector.validate_workflow(steps_for("quotation"), capabilities)

        assert 'Suggestion: Missing data detected. Add "Human Manual Input" for data entry by team members' in result.warnings
        assert 'Suggestion: Add "Human Manual Input" to manually enter missing information' in result.warnings
        assert (
            'Suggestion: Financial/communication modules detected. Add "Human Decision" for approval checkpoints'
        ) in result.warnings

    def test_no_suggestions_when_human_steps_present(self, capabilities):
        result = WorkflowInspector.validate_workflow(
            steps_for("human-manual-input", "human-decision", "quotation"), capabilities
        )

        assert not [warning for warning in result.warnings if warning.startswith("Suggestion:")]

    def test_complex_workflow_gap_and_analysis_endpoint(self, capabilities):
        result = WorkflowInspector.validate_workflow(
            steps_for(
                "ecommerce-scraper", "web-chatbot", "product-info",
                "quotation", "email-interact", "sales-analysis"
            ),
            capabilities
        )

        assert 'Suggestion: Complex workflow detected. Add "Human Decision" for review and approval gates' in result.warnings
        assert any("Data gap detected" in warning for warning in result.warnings)
        assert any("Analysis endpoint detected" in warning for warning in result.warnings)


class TestDependencyGraph:
    """Test cases for build_dependency_graph and suggested connections."""

    def test_providers_are_most_recent_producers(self, capabilities):
        graph = WorkflowInspector.build_dependency_graph(
            steps_for("ecommerce-scraper", "product-info", "quotation"), capabilities.module_map()
        )

        assert [node.module_id for node in graph] == ["ecommerce-scraper", "product-info", "quotation"]
        assert graph[0].dependencies == []
        assert graph[1].dependencies == ["products from step 0"]
        assert graph[2].dependencies == ["products from step 1"]
        assert graph[2].level == 2
        assert [port.data_type.value for port in graph[2].outputs] == ["quotes"]

    def test_missing_required_input_listed(self, capabilities):
        graph = WorkflowInspector.build_dependency_graph(steps_for("quotation"), capabilities.module_map())

        assert graph[0].dependencies == ["Missing required input: products"]

    def test_unknown_modules_are_left_out(self, capabilities):
        graph = WorkflowInspector.build_dependency_graph(
            steps_for("ghost", "ecommerce-scraper"), capabilities.module_map()
        )

        assert len(graph) == 1
        assert graph[0].level == 1

    def test_suggested_connections(self, capabilities):
        connections = WorkflowInspector.generate_suggested_connections(
            steps_for("ecommerce-scraper", "product-info", "web-chatbot", "quotation"), capabilities.module_map()
        )

        wire = [connection.to_wire() for connection in connections]
        assert {"fromModule": "ecommerce-scraper", "toModule": "product-info", "dataType": "products", "confidence": 0.9} in wire
        assert {"fromModule": "product-info", "toModule": "web-chatbot", "dataType": "products", "confidence": 0.6} in wire
        assert {"fromModule": "web-chatbot", "toModule": "quotation", "dataType": "customers", "confidence": 0.6} in wire


class TestCompatibilityAndOrdering:
    """Test cases for compatibility scoring and category ordering."""

    def test_compatible_modules(self, capabilities):
        result = WorkflowInspector.get_module_compatibility(
            capabilities.get_capability("ecommerce-scraper"), capabilities.get_capability("product-info")
        )

        assert result.compatible
        assert result.score == 0.7
        assert result.reasons == [
            "Shares 1 compatible data types: products",
            "Category flow: data_collection -> processing is optimal",
        ]

    def test_incompatible_modules(self, capabilities):
        result = WorkflowInspector.get_module_compatibility(
            capabilities.get_capability("connector-divisions"), capabilities.get_capability("ecommerce-scraper")
        )

        assert not result.compatible
        assert result.score == 0.0
        assert result.reasons == []

    def test_shared_types_alone_can_be_compatible(self, capabilities):
        result = WorkflowInspector.get_module_compatibility(
            capabilities.get_capability("quotation"), capabilities.get_capability("discount-pricing")
        )

        assert result.compatible
        assert result.score == 0.3

    def test_suggest_optimal_order(self, capabilities):
        suggestion = WorkflowInspector.suggest_optimal_order(
            ["connector-divisions", "sales-analysis", "ecommerce-scraper", "human-decision",
             "web-chatbot", "quotation", "product-info", "unknown"],
            capabilities
        )

        assert suggestion.order == [
            "ecommerce-scraper", "quotation", "product-info", "web-chatbot",
            "human-decision", "sales-analysis", "connector-divisions",
        ]
        assert suggestion.reasoning == ORDER_REASONING


class TestDataFlowAndAutoConnect:
    """Test cases for analyze_data_flow and auto_connect."""

    def test_analyze_data_flow(self, capabilities):
        report = WorkflowInspector.analyze_data_flow(
            steps_for("product-info", "ecommerce-scraper"), capabilities.module_map()
        )

        assert report["flow"][0] == {
            "stepIndex": 0,
            "instanceId": "s1",
            "moduleName": "Product Information",
            "inputs": [{"type": "products", "required": True, "available": False}],
            "outputs": ["products"],
        }
        assert report["bottlenecks"] == ["Step 1 (Product Information): Missing required data - products"]
        assert report["suggestions"] == [
            "Step 2 (E-commerce Scraper): Consider moving earlier in workflow as it doesn't depend on other modules"
        ]

    def test_auto_connect(self, capabilities):
        connected = WorkflowInspector.auto_connect(
            ["quotation", "ecommerce-scraper"], capabilities, id_factory=sequential_ids()
        )

        steps = connected["steps"]
        assert [step.instance_id for step in steps] == ["ecommerce-scraper-1", "quotation-2"]
        assert steps[0].llm is None
        assert steps[1].llm == "default"
        assert all(step.depends_on == [] for step in steps)
        assert connected["validation"].is_valid

    def test_new_instance_id(self):
        instance_id = new_instance_id("quotation")

        assert re.fullmatch(r"quotation-[0-9a-f]{8}", instance_id)
        assert new_instance_id("quotation") != instance_id
