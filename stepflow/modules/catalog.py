"""Default module catalogue with the data contracts of each built-in module."""

from typing import List

from ..models.core import ConfigField, DataPort, DataTypeEnum, ModuleCategory, ModuleDescriptor


def _port(data_type: DataTypeEnum, required: bool = False, **schema) -> DataPort:
    return DataPort(data_type=data_type, required=required, data_schema=schema or None)


def _field(name: str, label: str, type: str = "text", placeholder: str = None) -> ConfigField:
    return ConfigField(name=name, label=label, type=type, placeholder=placeholder)


DEFAULT_MODULES: List[ModuleDescriptor] = [
    ModuleDescriptor(
        id="ecommerce-scraper",
        name="E-commerce Scraper",
        description="Scrape product data, images, and prices from your website to build a product database.",
        category=ModuleCategory.DATA_COLLECTION,
        outputs=[_port(DataTypeEnum.PRODUCTS, True, name="string", price="number",
                       description="string", imageUrl="string")],
        config_fields=[
            _field("url", "Target URL", placeholder="https://example.com"),
            _field("selectors", "CSS Selectors", "textarea", ".product, .price"),
        ],
    ),
    ModuleDescriptor(
        id="product-info",
        name="Product Information",
        description="Review, select, and standardize product information for use in the automation process.",
        category=ModuleCategory.PROCESSING,
        inputs=[_port(DataTypeEnum.PRODUCTS, True)],
        outputs=[_port(DataTypeEnum.PRODUCTS, True)],
        config_fields=[
            _field("categories", "Product Categories", placeholder="Electronics, Clothing"),
            _field("fields", "Required Fields", "textarea", "name, price, description"),
        ],
    ),
    ModuleDescriptor(
        id="web-chatbot",
        name="Web Sales Chatbot",
        description="Engage website visitors 24/7 to answer questions and capture leads.",
        category=ModuleCategory.COMMUNICATION,
        inputs=[_port(DataTypeEnum.PRODUCTS)],
        outputs=[_port(DataTypeEnum.CUSTOMERS, email="string", interest="string")],
        config_fields=[
            _field("website", "Website URL", placeholder="https://yoursite.com"),
            _field("personality", "Chatbot Personality", "textarea", "Friendly and helpful sales assistant"),
        ],
        is_llm_powered=True,
    ),
    ModuleDescriptor(
        id="quotation",
        name="New and Revised Quotation",
        description="Generate, revise, and send sales quotes to customers personally.",
        category=ModuleCategory.PROCESSING,
        inputs=[_port(DataTypeEnum.PRODUCTS, True), _port(DataTypeEnum.CUSTOMERS)],
        outputs=[_port(DataTypeEnum.QUOTES, True, customer="string", finalPrice="number")],
        config_fields=[
            _field("template", "Quote Template", "textarea", "Quote template content..."),
            _field("validityDays", "Quote Validity (Days)", "number", "30"),
        ],
        is_llm_powered=True,
    ),
    ModuleDescriptor(
        id="discount-pricing",
        name="Discount & Pricing Strategy",
        description="Automatically apply dynamic discounts and strategic pricing models for different customers.",
        category=ModuleCategory.PROCESSING,
        inputs=[_port(DataTypeEnum.QUOTES, True), _port(DataTypeEnum.CUSTOMERS)],
        outputs=[_port(DataTypeEnum.PRICING), _port(DataTypeEnum.QUOTES)],
        config_fields=[
            _field("strategy", "Pricing Strategy", placeholder="Volume-based, Loyalty-based"),
            _field("maxDiscount", "Maximum Discount (%)", "number", "25"),
        ],
        is_llm_powered=True,
    ),
    ModuleDescriptor(
        id="email-interact",
        name="Email Interact with Customer",
        description="Automate personalized email quotations, re-quotes, and follow-ups.",
        category=ModuleCategory.COMMUNICATION,
        inputs=[_port(DataTypeEnum.QUOTES, True), _port(DataTypeEnum.CUSTOMERS)],
        outputs=[_port(DataTypeEnum.EMAILS, True)],
        config_fields=[
            _field("subject", "Email Subject Template", placeholder="Your Quote Request"),
            _field("signature", "Email Signature", "textarea", "Best regards,\nYour Sales Team"),
        ],
        is_llm_powered=True,
    ),
    ModuleDescriptor(
        id="human-decision",
        name="Human Decision",
        description="Pause the automation for manual review, approval, or input from a team member.",
        category=ModuleCategory.DECISION,
        outputs=[_port(DataTypeEnum.APPROVAL)],
        config_fields=[
            _field("approver", "Approver Email", placeholder="manager@company.com"),
            _field("instruction", "Review Instructions", "textarea", "Please review and approve this step..."),
            _field("decisionType", "Decision Type", placeholder="Approval"),
        ],
    ),
    ModuleDescriptor(
        id="human-manual-input",
        name="Human Manual Input",
        description="Pause the automation so a team member can enter missing data by hand.",
        category=ModuleCategory.DECISION,
        outputs=[_port(DataTypeEnum.PRODUCTS), _port(DataTypeEnum.CUSTOMERS), _port(DataTypeEnum.QUOTES)],
        config_fields=[
            _field("inputType", "Input Type", placeholder="Customer details, Product specifications"),
            _field("instruction", "Instructions", "textarea", "Please enter the required information"),
            _field("requiredFields", "Required Fields", placeholder="name, email, phone, notes"),
            _field("assignee", "Assignee Email", placeholder="sales@company.com"),
        ],
    ),
    ModuleDescriptor(
        id="sales-analysis",
        name="Sales Analysis",
        description="Analyze sales data and generate performance reports for each step in the workflow.",
        category=ModuleCategory.ANALYSIS,
        inputs=[_port(DataTypeEnum.QUOTES, True), _port(DataTypeEnum.EMAILS)],
        outputs=[_port(DataTypeEnum.ANALYTICS, True), _port(DataTypeEnum.REPORTS)],
        config_fields=[
            _field("metrics", "Key Metrics", "textarea", "Conversion rate, Revenue, Lead quality"),
            _field("period", "Analysis Period", placeholder="Monthly"),
        ],
        is_llm_powered=True,
    ),
    ModuleDescriptor(
        id="business-intelligence",
        name="Business Intelligence",
        description="Generate comparison reports on similar products and find actionable business insights.",
        category=ModuleCategory.ANALYSIS,
        inputs=[_port(DataTypeEnum.PRODUCTS, True), _port(DataTypeEnum.ANALYTICS)],
        outputs=[_port(DataTypeEnum.REPORTS, True)],
        config_fields=[
            _field("competitors", "Competitor URLs", "textarea", "https://competitor1.com"),
            _field("reportType", "Report Type", placeholder="Market Analysis"),
        ],
        is_llm_powered=True,
    ),
    ModuleDescriptor(
        id="connector-divisions",
        name="Connector to Divisions",
        description="Connect and sync workflow data with other business divisions (e.g., logistics, marketing).",
        category=ModuleCategory.INTEGRATION,
        inputs=[_port(DataTypeEnum.ANALYTICS), _port(DataTypeEnum.REPORTS)],
        outputs=[_port(DataTypeEnum.SYNC_DATA, True)],
        config_fields=[
            _field("divisions", "Target Divisions", placeholder="Logistics, Marketing, Finance"),
            _field("syncFrequency", "Sync Frequency", placeholder="Daily"),
        ],
    ),
]


def default_modules() -> List[ModuleDescriptor]:
    """Fresh copies of the built-in descriptors."""
    return [module.model_copy(deep=True) for module in DEFAULT_MODULES]
