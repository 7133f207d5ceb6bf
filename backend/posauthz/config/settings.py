from __future__ import annotations
import os
from typing import Any, Dict

DEFAULTS: Dict[str, Any] = {
    'JWT_SECRET_KEY': 'dev-secret',
    'DATABASE_URL': 'sqlite:///dev.db',
    'LOG_LEVEL': 'INFO',
    'SEED_ADMIN_EMAIL': 'admin@example.com',
    'SEED_ADMIN_PASSWORD': 'ChangeMe123!',
    'API_PREFIX': '/api/v1',
}


def load_settings() -> Dict[str, Any]:
    """Environment (after load_dotenv) layered over DEFAULTS."""
    return {key: os.getenv(key, default) for key, default in DEFAULTS.items()}
