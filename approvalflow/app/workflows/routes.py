from __future__ import annotations
from flask import Blueprint, render_template, redirect, url_for, flash, request, abort
from flask_babel import gettext as _
from ..auth.permissions import onboarding_required, permission_required
from ..forms import WorkflowForm
from ..services import workflows as workflow_service
from ..state import get_state

workflows_bp = Blueprint("workflows", __name__, template_folder="../templates")


def _form_data(form: WorkflowForm) -> dict:
    return {
        "name": form.name.data or "",
        "department": form.department.data or "",
        "type": form.type.data or "",
        "description": form.description.data or "",
        "steps": [
            {
                "name": entry.form.name.data or "",
                "approver_email": entry.form.approver_email.data or "",
                "required": bool(entry.form.required.data),
            }
            for entry in form.steps
        ],
    }


def _render_builder(form: WorkflowForm):
    return render_template(
        "workflows/builder.html",
        form=form,
        step_templates=workflow_service.STEP_TEMPLATES,
        industry_templates=workflow_service.INDUSTRY_TEMPLATES,
        workflow_types=workflow_service.WORKFLOW_TYPES,
    )


@workflows_bp.route("/workflows")
@onboarding_required
def list_workflows():
    found = workflow_service.list_workflows(get_state().organization.id)
    if not found.ok:
        flash(_("Failed to fetch workflows"), "error")
    return render_template("workflows/list.html", workflows=found.value if found.ok else [])


@workflows_bp.route("/workflow", methods=["GET", "POST"])
@onboarding_required
@permission_required("workflows:write")
def builder():
    if request.method == "GET":
        data = {"steps": workflow_service.template_steps(request.args.get("template"))}
        industry = request.args.get("industry")
        if industry:
            template = workflow_service.find_industry_template(industry, request.args.get("template_name", ""))
            if template is None:
                flash(_("Unknown template"), "warning")
            else:
                data.update(name=template["name"], description=template["description"], department=template["department"])
        return _render_builder(WorkflowForm(formdata=None, data=data))

    form = WorkflowForm()
    action = request.form.get("action", "save")
    if action != "save":
        data = _form_data(form)
        if action == "add_step":
            data["steps"].append({"name": f"Step {len(data['steps']) + 1}", "approver_email": "", "required": True})
        elif action.startswith("remove_step:"):
            try:
                index = int(action.split(":", 1)[1])
            except ValueError:
                abort(400)
            if len(data["steps"]) > 1 and 0 <= index < len(data["steps"]):
                data["steps"].pop(index)
        elif action.startswith("use_template:"):
            data["steps"] = workflow_service.template_steps(action.split(":", 1)[1])
        return _render_builder(WorkflowForm(formdata=None, data=data))

    if not form.validate_on_submit():
        for field, errors in form.errors.items():
            for message in errors:
                flash(f"{field}: {message}", "error")
        return _render_builder(form)

    state = get_state()
    data = _form_data(form)
    result = workflow_service.create_workflow_with_steps(state.identity.id, state.organization.id, data, data["steps"])
    if not result.ok:
        flash(result.message, "error")
        return _render_builder(form)
    flash(_("Workflow saved"), "success")
    return redirect(url_for("workflows.detail", workflow_id=result.value["workflow"].id))


@workflows_bp.route("/workflows/<workflow_id>")
@onboarding_required
def detail(workflow_id: str):
    found = workflow_service.get_workflow(get_state().organization.id, workflow_id)
    if not found.ok:
        abort(404)
    return render_template("workflows/detail.html", workflow=found.value)


@workflows_bp.route("/workflows/<workflow_id>/status", methods=["POST"])
@onboarding_required
def change_status(workflow_id: str):
    state = get_state()
    result = workflow_service.update_workflow(
        state.identity.id, state.organization.id, workflow_id, {"status": request.form.get("status", "")}
    )
    if not result.ok:
        flash(result.message, "error")
    else:
        flash(_("Workflow updated"), "success")
    return redirect(url_for("workflows.detail", workflow_id=workflow_id))


@workflows_bp.route("/workflows/<workflow_id>/delete", methods=["POST"])
@onboarding_required
def delete(workflow_id: str):
    state = get_state()
    result = workflow_service.delete_workflow(state.identity.id, state.organization.id, workflow_id)
    if not result.ok:
        flash(result.message, "error")
        return redirect(url_for("workflows.detail", workflow_id=workflow_id))
    flash(_("Workflow deleted"), "success")
    return redirect(url_for("workflows.list_workflows"))
