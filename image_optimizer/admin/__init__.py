"""
Local Admin API — JSON endpoints for optimizing and reverting assets.

Usage:
    python -m image_optimizer.admin
    # Serves http://127.0.0.1:5050/api/*

Features:
    - Optimize / revert single assets, bulk-optimize several
    - Browse the library with per-asset ledger state
    - Savings statistics and per-asset history
    - Read and update optimizer settings
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
