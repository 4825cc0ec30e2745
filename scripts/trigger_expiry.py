# scripts/trigger_expiry.py
"""Run the expiry sweep against a running service. Meant for a cron entry.

    KEYADMIN_URL=https://admin.example CRON_SECRET=... python scripts/trigger_expiry.py
"""
import sys
from pathlib import Path

# Ensure project root is on the path when running this script directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncio
import os

import httpx

from keyadmin.config.settings import get_settings


async def trigger():
    base_url = os.environ.get("KEYADMIN_URL", "http://localhost:8000").rstrip("/")
    secret = get_settings().cron_secret
    if not secret:
        sys.exit("CRON_SECRET is not set")

    async with httpx.AsyncClient(timeout=120) as client:
        r = await client.post(f"{base_url}/api/cron/expire", headers={"x-cron-secret": secret})
    print("Status:", r.status_code)
    print("Result:", r.text)
    if r.status_code != 200:
        sys.exit(1)

asyncio.run(trigger())
