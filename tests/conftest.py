"""Shared pytest setup for the AURA dashboard tests."""

import os

# Keep test runs from writing daily log files or reading a developer's Supabase
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "")
