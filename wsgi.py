from __future__ import annotations

# Top-level WSGI entry so `gunicorn wsgi:app` works from the repository root.
# Setup lives in the `approvalflow.app.create_app` factory.
from approvalflow.app import create_app


app = create_app()
