#!/usr/bin/env python3
"""
Main entry point for the profile-card server.
"""

import os

from profile_card.server import run_server

if __name__ == "__main__":
    # Run server on port 8000 for local development, or $PORT when deployed
    port = int(os.environ.get('PORT', 8000))
    run_server(port=port)
