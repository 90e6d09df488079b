"""Executors for the human checkpoint modules.

Neither executor blocks the run: each returns a request record describing
the pending human action, and the workflow carries on with that record as
the step's result.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MANUAL_FIELDS = ["name", "email", "phone", "notes"]


def _count(input_data: Optional[Dict[str, Any]], key: str) -> Optional[int]:
    if not input_data:
        return None
    value = input_data.get(key)
    if isinstance(value, (list, tuple)):
        return len(value)
    return None


def _price(value: Any) -> float:
    """Quote price as a number; missing or unparseable prices count as 0."""
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric quote price: {value!r}")
        return 0.0


def human_decision(config: Dict[str, Any], input_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Create a pending approval request for the upstream data.

    Args:
        config: ``approver``, ``instruction`` and ``decisionType`` (all optional)
        input_data: Merged result of the upstream steps, if any

    Returns:
        Approval request record with status ``pending_approval``
    """
    approver = str(config.get("approver") or "manager@company.com")
    instruction = str(config.get("instruction") or "Please review and approve this workflow step")
    decision_type = str(config.get("decisionType") or "Approval")
    requested_at = datetime.utcnow().isoformat()

    logger.info(f"Human decision required: {decision_type} from {approver}")

    data_keys = sorted(key for key in (input_data or {}) if not key.startswith("_"))

    lines = ["Workflow step requires human review:", ""]
    products = _count(input_data, "products")
    if products is not None:
        lines.append(f"- Products processed: {products}")
    quotes = _count(input_data, "quotes")
    if quotes is not None:
        total = sum(
            _price(quote.get("finalPrice"))
            for quote in input_data["quotes"] if isinstance(quote, dict)
        )
        lines.append(f"- Quotes generated: {quotes}")
        lines.append(f"- Total quote value: ${total:.2f}")
    emails = _count(input_data, "emails")
    if emails is not None:
        lines.append(f"- Emails prepared: {emails}")
    analysis = (input_data or {}).get("analysis")
    if isinstance(analysis, dict):
        lines.append("- Sales analysis completed")
        lines.append(f"- Conversion rate: {analysis.get('conversionRate')}")

    return {
        "status": "pending_approval",
        "decision": {
            "status": "pending_approval",
            "decisionType": decision_type,
            "approver": approver,
            "instruction": instruction,
            "requestedAt": requested_at,
            "decision": None,
            "approved": None,
            "notes": None,
            "decidedAt": None,
            "workflowData": {
                "previousSteps": len(data_keys),
                "dataAvailable": data_keys,
            },
        },
        "approvalSummary": "\n".join(lines),
        "approver": approver,
        "decisionType": decision_type,
        "instruction": instruction,
        "message": (
            f"Workflow paused for {decision_type.lower()} by {approver}. The approver can "
            "approve or reject the step once notified."
        ),
        "nextSteps": [
            "Approver receives notification",
            "Approver reviews workflow data",
            "Approver makes decision (approve/reject)",
            "Workflow continues or stops based on decision",
        ],
        "requestedAt": requested_at,
    }


def infer_field_type(field_name: str) -> str:
    """Guess a form widget type from a field name."""
    lowered = field_name.lower()
    if "email" in lowered:
        return "email"
    if "phone" in lowered or "tel" in lowered:
        return "tel"
    if "date" in lowered:
        return "date"
    if any(word in lowered for word in ("price", "amount", "cost")):
        return "number"
    if "url" in lowered or "website" in lowered:
        return "url"
    if any(word in lowered for word in ("notes", "description", "comment")):
        return "textarea"
    return "text"


def parse_required_fields(value: Any) -> List[str]:
    if not value:
        return list(DEFAULT_MANUAL_FIELDS)
    return [field.strip() for field in str(value).split(",") if field.strip()]


def human_manual_input(config: Dict[str, Any], input_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Create a data-entry request with a form template for the assignee.

    Args:
        config: ``inputType``, ``instruction``, ``requiredFields`` (comma separated)
            and ``assignee`` (all optional)
        input_data: Merged result of the upstream steps, if any

    Returns:
        Data-entry request record with status ``awaiting_data_entry``
    """
    input_type = str(config.get("inputType") or "Customer details, Product specifications, etc.")
    instruction = str(config.get("instruction") or "Please enter the required information")
    assignee = str(config.get("assignee") or "sales@company.com")
    required_fields = parse_required_fields(config.get("requiredFields"))
    assigned_at = datetime.utcnow().isoformat()

    logger.info(f"Manual data entry required: {input_type} from {assignee}")

    summary = [
        "Manual data entry required for workflow:",
        "",
        f"Input Type: {input_type}",
        f"Required Fields: {', '.join(required_fields)}",
    ]
    if input_data:
        summary.extend(["", "Previous Workflow Context:"])
        for key, label in (("products", "products in workflow"),
                           ("customers", "customers identified"),
                           ("quotes", "quotes generated")):
            count = _count(input_data, key)
            if count is not None:
                summary.append(f"- {count} {label}")

    return {
        "status": "awaiting_data_entry",
        "inputRequest": {
            "status": "awaiting_data_entry",
            "inputType": input_type,
            "assignee": assignee,
            "instruction": instruction,
            "requiredFields": required_fields,
            "dataEntered": False,
            "assignedAt": assigned_at,
            "completedAt": None,
            "enteredData": None,
        },
        "contextSummary": "\n".join(summary),
        "formTemplate": {
            "title": f"Manual Input Required: {input_type}",
            "instructions": instruction,
            "fields": [
                {
                    "name": field,
                    "label": field[:1].upper() + field[1:],
                    "type": infer_field_type(field),
                    "required": True,
                    "value": None,
                }
                for field in required_fields
            ],
        },
        "assignee": assignee,
        "inputType": input_type,
        "requiredFields": required_fields,
        "dataEntered": False,
        "message": (
            f"Workflow paused for manual data entry by {assignee}. The assignee can enter "
            "the data through the form once notified."
        ),
        "nextSteps": [
            "Assignee receives notification",
            "Assignee reviews context and instructions",
            "Assignee fills out required fields",
            "Data is validated",
            "Workflow continues with entered data",
        ],
        "assignedAt": assigned_at,
    }
