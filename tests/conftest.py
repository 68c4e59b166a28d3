"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings.
"""
import os

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
