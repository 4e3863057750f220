#!/usr/bin/env python3
"""CGM Dashboard CLI launcher script.

This is a convenience script that can be run directly from the scripts directory.
The actual implementation is in cgm_dashboard.dashboard_cli for proper package integration.

Usage:
    python scripts/dashboard_cli.py <command> [options]

Or install the package and use:
    cgm-dashboard <command> [options]
    python -m cgm_dashboard.dashboard_cli <command> [options]
"""

from cgm_dashboard.dashboard_cli import main

if __name__ == "__main__":
    main()
