#!/usr/bin/env python3
"""Convenience runner for the workout reconciliation CLI.

Usage:
    python run.py --planned plan.json --completed done.json
"""
import sys

from workout_reconciliation.main import main

if __name__ == "__main__":
    sys.exit(main())
