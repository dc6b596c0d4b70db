#!/usr/bin/env python3
"""
Run the device-side alarm checks and edge sync.

Starts the foreground and background evaluator loops against the local
event store and, if a push subscription is configured, keeps the edge
dispatcher in sync.

Usage:
    python scripts/run_device.py [--schedule-id=ID]

Configuration is read from .env (STORE_DATABASE_URL, EDGE_URL,
PUSH_ENDPOINT, PUSH_P256DH, PUSH_AUTH, ...).
"""
import argparse
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eventalarm.core.config import settings
from eventalarm.device import run_device


def main():
    parser = argparse.ArgumentParser(description="Run local alarm checks")
    parser.add_argument("--schedule-id", help="Schedule to watch (default: most recent)")
    args = parser.parse_args()

    if args.schedule_id:
        settings.schedule_id = args.schedule_id

    run_device()


if __name__ == "__main__":
    main()
