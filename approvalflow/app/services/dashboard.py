from __future__ import annotations

from ..models import User, Workflow

# Placeholder analytics until approval requests exist as records.
RECENT_APPROVALS = [
    {"id": 1, "title": "Marketing Campaign Budget", "department": "Marketing", "status": "pending", "amount": "$5,000", "submitter": "John Doe", "date": "2024-01-15"},
    {"id": 2, "title": "New Employee Onboarding", "department": "HR", "status": "approved", "amount": "-", "submitter": "Jane Smith", "date": "2024-01-14"},
    {"id": 3, "title": "IT Equipment Purchase", "department": "IT", "status": "rejected", "amount": "$2,500", "submitter": "Mike Johnson", "date": "2024-01-14"},
    {"id": 4, "title": "Travel Expense Reimbursement", "department": "Finance", "status": "pending", "amount": "$850", "submitter": "Sarah Wilson", "date": "2024-01-13"},
]


def dashboard_summary(org_id: str) -> dict:
    total_workflows = Workflow.query.filter_by(organization_id=org_id).count()
    active_users = User.query.filter_by(organization_id=org_id).count()
    return {
        "stats": [
            {"title": "Pending Approvals", "value": 12},
            {"title": "Completed Today", "value": 8},
            {"title": "Total Workflows", "value": total_workflows},
            {"title": "Active Users", "value": active_users},
        ],
        "recent_approvals": RECENT_APPROVALS,
    }
