#!/usr/bin/env python3
# backend/run_celery_beat.py
"""
Development Celery beat: schedules the pending-booking expiry sweep.
"""
import os
from pathlib import Path
import subprocess
import sys

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "development")

if __name__ == "__main__":
    print("Starting Celery beat (expiry sweep)")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "trim_booking.tasks.celery_app",
        "beat",
        "--loglevel=info",
    ]

    subprocess.run(cmd)
