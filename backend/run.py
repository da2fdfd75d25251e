#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Tables are created on the configured database before uvicorn starts.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

# Default SITE_MODE for local development
os.environ.setdefault("SITE_MODE", "local")

import uvicorn

from app.init_db import create_tables

if __name__ == "__main__":
    create_tables()
    print("🚀 Starting CoachLane API (SITE_MODE=" + os.getenv("SITE_MODE", "local") + ")…")
    print("🌐 Access at: http://localhost:8000")
    print("📚 API Docs: http://localhost:8000/docs")

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
