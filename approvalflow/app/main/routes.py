from __future__ import annotations
from flask import Blueprint, render_template, redirect, url_for
from ..auth.permissions import onboarding_required
from ..services.dashboard import dashboard_summary
from ..services.workflows import list_workflows
from ..state import get_state

main_bp = Blueprint("main", __name__, template_folder="../templates")

FEATURES = [
    {"title": "Any department", "desc": "HR, Finance, Marketing, IT and more, each with ready-made approval types."},
    {"title": "Built for teams", "desc": "Invite colleagues, assign roles and keep every approver accountable."},
    {"title": "Secure by default", "desc": "Organization-scoped data with role-based access for every member."},
]

PLANS = [
    {"name": "Starter", "price": "$29", "users": "Up to 10 users", "features": ["Basic workflows", "Email notifications", "PDF export"]},
    {"name": "Professional", "price": "$99", "users": "Up to 100 users", "features": ["AI document generation", "Advanced workflows", "API integrations", "Priority support"]},
    {"name": "Enterprise", "price": "Custom", "users": "Unlimited users", "features": ["White-label branding", "Custom integrations", "Dedicated support", "On-premise deployment"]},
]


@main_bp.route("/")
def index():
    state = get_state()
    if state.is_authenticated:
        if state.has_organization:
            return redirect(url_for("main.dashboard"))
        return redirect(url_for("onboarding.setup"))
    return render_template("landing.html", features=FEATURES, plans=PLANS)


@main_bp.route("/dashboard")
@onboarding_required
def dashboard():
    state = get_state()
    summary = dashboard_summary(state.organization.id)
    workflows = list_workflows(state.organization.id)
    recent = workflows.value[:5] if workflows.ok else []
    return render_template("dashboard.html", summary=summary, workflows=recent)
