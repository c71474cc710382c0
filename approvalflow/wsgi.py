from __future__ import annotations

# Package-local entry point (`gunicorn approvalflow.wsgi:app`, `FLASK_APP=approvalflow.wsgi`).
from approvalflow.app import create_app


app = create_app()
