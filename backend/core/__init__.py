"""Core backend infrastructure for the vote leaderboard backend.

This package contains configuration, logging, database, and dependency helpers
used by the FastAPI application entrypoint and the ops CLI.
"""
