"""Tests for the human checkpoint executors."""

import pytest

from stepflow.modules.human import (
    DEFAULT_MANUAL_FIELDS,
    human_decision,
    human_manual_input,
    infer_field_type,
    parse_required_fields,
)


class TestHumanDecision:
    """Test cases for the approval request executor."""

    def test_defaults(self):
        record = human_decision({}, None)

        assert record["status"] == "pending_approval"
        assert record["approver"] == "manager@company.com"
        assert record["decisionType"] == "Approval"
        assert record["decision"]["approved"] is None
        assert record["decision"]["workflowData"] == {"previousSteps": 0, "dataAvailable": []}
        assert record["requestedAt"] == record["decision"]["requestedAt"]
        assert len(record["nextSteps"]) == 4

    def test_summary_describes_upstream_data(self):
        record = human_decision(
            {"approver": "cfo@company.com", "decisionType": "Budget"},
            {
                "products": [{}, {}],
                "quotes": [{"finalPrice": 100}, {"finalPrice": "50.5"}],
                "_sources": ["a", "b"],
            }
        )

        summary = record["approvalSummary"]
        assert "- Products processed: 2" in summary
        assert "- Quotes generated: 2" in summary
        assert "- Total quote value: $150.50" in summary
        assert record["decision"]["workflowData"]["dataAvailable"] == ["products", "quotes"]
        assert record["message"].startswith("Workflow paused for budget by cfo@company.com")

    def test_non_string_config_and_bad_prices(self):
        record = human_decision(
            {"decisionType": 5, "approver": 42},
            {"quotes": [{"finalPrice": "n/a"}, {"finalPrice": 20}, {"finalPrice": None}]}
        )

        assert record["decisionType"] == "5"
        assert record["approver"] == "42"
        assert record["message"].startswith("Workflow paused for 5 by 42")
        assert "- Total quote value: $20.00" in record["approvalSummary"]


class TestHumanManualInput:
    """Test cases for the data entry request executor."""

    def test_defaults(self):
        record = human_manual_input({}, None)

        assert record["status"] == "awaiting_data_entry"
        assert record["assignee"] == "sales@company.com"
        assert record["requiredFields"] == DEFAULT_MANUAL_FIELDS
        assert record["dataEntered"] is False
        assert record["inputRequest"]["enteredData"] is None
        assert [field["type"] for field in record["formTemplate"]["fields"]] == ["text", "email", "tel", "textarea"]

    def test_required_fields_from_config(self):
        record = human_manual_input(
            {"requiredFields": "company, contactEmail , budget amount, startDate", "inputType": "Leads"},
            {"customers": [1, 2, 3]}
        )

        fields = record["formTemplate"]["fields"]
        assert [field["name"] for field in fields] == ["company", "contactEmail", "budget amount", "startDate"]
        assert [field["type"] for field in fields] == ["text", "email", "number", "date"]
        assert fields[0]["label"] == "Company"
        assert record["formTemplate"]["title"] == "Manual Input Required: Leads"
        assert "- 3 customers identified" in record["contextSummary"]


@pytest.mark.parametrize("name, expected", [
    ("email", "email"),
    ("phoneNumber", "tel"),
    ("deliveryDate", "date"),
    ("unitPrice", "number"),
    ("website", "url"),
    ("comment", "textarea"),
    ("company", "text"),
])
def test_infer_field_type(name, expected):
    assert infer_field_type(name) == expected


def test_parse_required_fields():
    assert parse_required_fields(None) == DEFAULT_MANUAL_FIELDS
    assert parse_required_fields("") == DEFAULT_MANUAL_FIELDS
    assert parse_required_fields("a, b,,c ") == ["a", "b", "c"]
