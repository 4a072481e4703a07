"""JSON file storage for generated session bundles."""

import json
import os
from pathlib import Path

from .config import SESSION_OUTPUT_DIR
from .models import SessionBundle


def ensure_dir(directory: str = SESSION_OUTPUT_DIR):
    """Ensure the output directory exists."""
    Path(directory).mkdir(parents=True, exist_ok=True)


def bundle_filename(bundle: SessionBundle) -> str:
    """Named by user id once the beneficiary has a User row, by bundle id before."""
    if bundle.user_id is not None:
        return f"synthetic-session-user-{bundle.user_id}.json"
    return f"synthetic-session-{bundle.id}.json"


def save_session_bundle(bundle: SessionBundle, directory: str = SESSION_OUTPUT_DIR) -> str:
    """Save a session bundle and return its path."""
    ensure_dir(directory)
    path = os.path.join(directory, bundle_filename(bundle))
    with open(path, 'w') as f:
        json.dump(bundle.to_dict(), f, indent=2)
    return path


def load_session_bundle(path: str) -> SessionBundle:
    """Load a session bundle from a JSON file."""
    with open(path, 'r') as f:
        data = json.load(f)
    return SessionBundle.from_dict(data)

