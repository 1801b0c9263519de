# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ASGI application entry point for uvicorn.

The configuration is read from ``HSR_CONFIG`` / ``HSR_*`` environment
variables when the module is imported.

Usage:
    HSR_SMTP_SERVER=smtp.example.com:587 \\
        uvicorn http_smtp_relay.server:app --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

from .api import create_app
from .config import load_settings
from .logger import configure_logging

_config = load_settings()
configure_logging(_config.log_level)

app = create_app(_config)
