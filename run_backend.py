#!/usr/bin/env python
"""Script to run the task API server."""
import sys
from pathlib import Path

# Add project directory to Python path
project_dir = Path(__file__).resolve().parent
sys.path.insert(0, str(project_dir))

import uvicorn

from taskapi.config import load_settings

if __name__ == "__main__":
    settings = load_settings()
    uvicorn.run(
        "taskapi.main:app",
        host=settings.host,
        port=settings.port,
        reload="--reload" in sys.argv,
    )
