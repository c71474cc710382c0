from __future__ import annotations

import copy

from flask import current_app

from ..backend import get_backend
from ..models import WORKFLOW_STATUSES
from ..result import Err, Ok, Result
from ..saga import Saga
from . import roles
from .invitations import normalize_email

DEPARTMENTS = [
    "HR", "Finance", "Marketing", "Legal", "IT", "Operations",
    "Sales", "Strategy", "Design", "Procurement", "Admin",
]

WORKFLOW_TYPES = {
    "HR": ["Hiring Approval", "Leave Request", "Exit Clearance", "Performance Review"],
    "Finance": ["Budget Approval", "Invoice Processing", "Expense Reimbursement", "Payment Authorization"],
    "Marketing": ["Campaign Budget", "Content Approval", "PR Release", "Event Sponsorship"],
    "Legal": ["Contract Review", "Policy Change", "Compliance Check", "Legal Opinion"],
    "IT": ["Software Purchase", "Access Request", "Change Request", "Security Review"],
    "Operations": ["Maintenance Request", "Equipment Purchase", "Process Change", "Quality Check"],
    "Sales": ["Proposal Approval", "Discount Authorization", "Credit Limit", "Deal Closure"],
    "Strategy": ["Investment Decision", "Partnership Agreement", "Strategic Initiative", "Budget Planning"],
    "Design": ["Brand Approval", "Asset Review", "Creative Brief", "Design Change"],
    "Procurement": ["Purchase Order", "Vendor Selection", "Contract Negotiation", "Supplier Audit"],
    "Admin": ["Facility Request", "Supply Order", "Policy Update", "Administrative Change"],
}

# Canned step layouts offered by the builder.
STEP_TEMPLATES = {
    "simple": {
        "name": "Simple Approval",
        "description": "Single approver workflow",
        "steps": [{"name": "Manager Approval", "approver_email": "", "required": True}],
    },
    "sequential": {
        "name": "Sequential Approval",
        "description": "Multi-level approval chain",
        "steps": [
            {"name": "Direct Manager", "approver_email": "", "required": True},
            {"name": "Department Head", "approver_email": "", "required": True},
            {"name": "Executive Approval", "approver_email": "", "required": True},
        ],
    },
    "parallel": {
        "name": "Parallel Review",
        "description": "Multiple approvers simultaneously",
        "steps": [
            {"name": "Technical Review", "approver_email": "", "required": True},
            {"name": "Budget Review", "approver_email": "", "required": True},
        ],
    },
}

INDUSTRY_TEMPLATES = {
    "Technology": [
        {"name": "Software License Approval", "description": "Approve new software purchases and licenses", "department": "IT"},
        {"name": "Code Deployment", "description": "Production deployment approval process", "department": "IT"},
        {"name": "Security Access Request", "description": "Grant system access permissions", "department": "IT"},
    ],
    "Healthcare": [
        {"name": "Patient Treatment Plan", "description": "Medical treatment approval workflow", "department": "Medical"},
        {"name": "Equipment Procurement", "description": "Medical equipment purchase approval", "department": "Procurement"},
        {"name": "Staff Certification", "description": "Healthcare staff certification process", "department": "HR"},
    ],
    "Finance": [
        {"name": "Loan Approval", "description": "Multi-tier loan approval process", "department": "Finance"},
        {"name": "Investment Decision", "description": "Investment committee approval", "department": "Strategy"},
        {"name": "Risk Assessment", "description": "Financial risk evaluation workflow", "department": "Risk"},
    ],
    "Manufacturing": [
        {"name": "Production Change Order", "description": "Manufacturing process changes", "department": "Operations"},
        {"name": "Quality Control", "description": "Product quality approval workflow", "department": "Quality"},
        {"name": "Supplier Qualification", "description": "New supplier approval process", "department": "Procurement"},
    ],
    "Retail": [
        {"name": "Product Launch", "description": "New product introduction approval", "department": "Marketing"},
        {"name": "Pricing Strategy", "description": "Price change approval workflow", "department": "Sales"},
        {"name": "Store Operations", "description": "Store policy and procedure changes", "department": "Operations"},
    ],
    "Education": [
        {"name": "Course Approval", "description": "New course curriculum approval", "department": "Academic"},
        {"name": "Faculty Hiring", "description": "Academic staff recruitment process", "department": "HR"},
        {"name": "Research Grant", "description": "Research funding approval workflow", "department": "Research"},
    ],
}

DEFAULT_STEPS = [{"name": "Initial Review", "approver_email": "", "required": True}]


def template_steps(key: "str | None") -> list[dict]:
    template = STEP_TEMPLATES.get(key or "")
    return copy.deepcopy(template["steps"] if template else DEFAULT_STEPS)


def find_industry_template(industry: str, name: str) -> "dict | None":
    for template in INDUSTRY_TEMPLATES.get(industry, []):
        if template["name"] == name:
            return dict(template, industry=industry)
    return None


TEXT_FIELDS = ("name", "department", "type", "description", "status")


def _non_text_field(data: dict) -> "str | None":
    for key in TEXT_FIELDS:
        if data.get(key) is not None and not isinstance(data[key], str):
            return key
    return None


def validate_workflow(data: dict, steps: list[dict]) -> "tuple[Err | None, list[dict]]":
    """Check the definition and return the normalized step rows (without workflow_id)."""
    bad = _non_text_field(data)
    if bad:
        return Err.validation(f"Workflow {bad} must be text."), []
    if not (data.get("name") or "").strip():
        return Err.validation("Workflow name is required."), []
    if data.get("status") and data["status"] not in WORKFLOW_STATUSES:
        return Err.validation("Unknown workflow status."), []
    if not steps:
        return Err.validation("A workflow needs at least one approval step."), []
    rows = []
    for index, step in enumerate(steps, start=1):
        if not isinstance(step, dict):
            return Err.validation(f"Step {index} is malformed."), []
        name = step.get("name")
        if not isinstance(name, str) or not name.strip():
            return Err.validation(f"Step {index} needs a name."), []
        approver = normalize_email(step.get("approver_email") or step.get("approver"))
        if approver is None:
            return Err.validation(f"Step {index} needs a valid approver email."), []
        required = step.get("required", True)
        if not isinstance(required, bool):
            return Err.validation(f"Step {index} 'required' must be true or false."), []
        rows.append({"name": name.strip(), "approver_email": approver, "order_index": index, "required": required})
    return None, rows


def create_workflow_with_steps(caller_id: str, org_id: str, data: dict, steps: list[dict]) -> Result:
    if not roles.has_permission(caller_id, org_id, "workflows:write"):
        return Err.denied()
    invalid, step_rows = validate_workflow(data, steps)
    if invalid is not None:
        return invalid

    backend = get_backend()

    def insert_workflow(ctx: dict) -> Result:
        inserted = backend.insert(
            "workflows",
            {
                "name": data["name"].strip(),
                "department": data.get("department") or None,
                "type": data.get("type") or None,
                "description": (data.get("description") or "").strip() or None,
                "organization_id": org_id,
                "created_by": caller_id,
                "status": data.get("status") or "active",
            },
        )
        return Ok(inserted.value[0]) if inserted.ok else inserted

    def insert_steps(ctx: dict) -> Result:
        workflow_id = ctx["workflow"].id
        return backend.insert("workflow_steps", [dict(row, workflow_id=workflow_id) for row in step_rows])

    saga = Saga("create_workflow")
    # no orphaned workflow shells: a failed step insert removes the workflow row
    saga.add_step("workflow", insert_workflow, compensate=lambda ctx, wf: backend.delete("workflows", id=wf.id))
    saga.add_step("steps", insert_steps)
    outcome = saga.execute()
    if not outcome.ok:
        return outcome
    workflow = outcome.value["workflow"]
    current_app.logger.info("workflow %s saved with %s step(s)", workflow.id, len(step_rows))
    return Ok({"workflow": workflow, "steps": outcome.value["steps"]})


def list_workflows(org_id: str) -> Result:
    return get_backend().select("workflows", order_by="created_at", descending=True, organization_id=org_id)


def get_workflow(org_id: str, workflow_id: str) -> Result:
    found = get_backend().select_one("workflows", id=workflow_id, organization_id=org_id)
    if not found.ok:
        return found
    if found.value is None:
        return Err.not_found()
    return Ok(found.value)


def update_workflow(caller_id: str, org_id: str, workflow_id: str, updates: dict) -> Result:
    if not roles.has_permission(caller_id, org_id, "workflows:write"):
        return Err.denied()
    allowed = {k: v for k, v in updates.items() if k in TEXT_FIELDS}
    bad = _non_text_field(allowed)
    if bad:
        return Err.validation(f"Workflow {bad} must be text.")
    if "name" in allowed and not (allowed["name"] or "").strip():
        return Err.validation("Workflow name is required.")
    if "status" in allowed and allowed["status"] not in WORKFLOW_STATUSES:
        return Err.validation("Unknown workflow status.")
    found = get_workflow(org_id, workflow_id)
    if not found.ok:
        return found
    updated = get_backend().update("workflows", allowed, id=workflow_id, organization_id=org_id)
    if not updated.ok:
        return updated
    return Ok(updated.value[0])


def delete_workflow(caller_id: str, org_id: str, workflow_id: str) -> Result:
    if not roles.has_permission(caller_id, org_id, "workflows:write"):
        return Err.denied()
    found = get_workflow(org_id, workflow_id)
    if not found.ok:
        return found
    backend = get_backend()
    steps_removed = backend.delete("workflow_steps", workflow_id=workflow_id)
    if not steps_removed.ok:
        return steps_removed
    removed = backend.delete("workflows", id=workflow_id, organization_id=org_id)
    if not removed.ok:
        return removed
    current_app.logger.info("workflow %s deleted by %s", workflow_id, caller_id)
    return Ok(removed.value)
