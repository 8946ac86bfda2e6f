"""Backend credential loading.

A service-account key file is the usual deployment; when no file is
configured we fall back to application default credentials, which is what
Cloud Run and GKE workloads get for free.
"""

from __future__ import annotations

from pathlib import Path
from dataclasses import dataclass

import google.auth
from google.auth.credentials import Credentials
from google.oauth2 import service_account

DIALOGFLOW_SCOPES = ("https://www.googleapis.com/auth/cloud-platform",)


@dataclass(frozen=True, slots=True)
class BackendCredentials:
    credentials: Credentials
    project_id: str


def load_backend_credentials(path: Path | None, *, project_id: str = "") -> BackendCredentials:
    """Load credentials and the project id that owns the agent.

    Raises ValueError when no project id can be derived; I/O and
    google-auth errors propagate to the caller.
    """
    if path is not None:
        creds = service_account.Credentials.from_service_account_file(str(path), scopes=DIALOGFLOW_SCOPES)
        derived = getattr(creds, "project_id", None) or ""
    else:
        creds, derived = google.auth.default(scopes=DIALOGFLOW_SCOPES)
        derived = derived or ""

    resolved = (project_id or derived).strip()
    if not resolved:
        raise ValueError("could not determine the Dialogflow project id from credentials; set DIALOGFLOW_PROJECT_ID")
    return BackendCredentials(credentials=creds, project_id=resolved)


__all__ = ["BackendCredentials", "load_backend_credentials"]
