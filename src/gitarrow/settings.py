from __future__ import annotations
import os

from . import __version__

GIT_DIR_ENV = "GIT_DIR"
WORKSPACE_ROOT = os.environ.get("ARROW_WORKSPACE_ROOT", "/tmp/arrow-workspace")
PIPELINE_DIR = os.environ.get("ARROW_PIPELINE_DIR", ".arrow")
OUTPUT_ENV_KEY = "ARROW_ENV"
WEBHOOK_TIMEOUT = float(os.environ.get("ARROW_WEBHOOK_TIMEOUT", "10"))
USER_AGENT = f"git-arrow/{__version__}"
