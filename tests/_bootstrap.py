"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


_DEFAULT_ENV_VARS: dict[str, str] = {
    "CMS_URL": "https://cms.example.com",
    "CMS_STATIC_TOKEN": "test-static-token",
    "STRAVA_CLIENT_ID": "12345",
    "AUTH_PROXY_URL": "https://auth-proxy.example.com",
    "WEBHOOK_SECRET": "test-hook-secret",
    "ENRICHMENT_URL": "https://enrichment.example.com",
    "SERVICE_BASE_URL": "https://cms.example.com/strava",
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)
