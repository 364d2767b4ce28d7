"""
Main entry point for the realtime socket client.

This module allows the client to be run using:
    python -m realtime_client
"""

import sys

from realtime_client.presentation.cli import main

if __name__ == "__main__":
    sys.exit(main())
