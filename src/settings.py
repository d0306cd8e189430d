"""Static configuration for botwarden.

All user-editable settings (bots, filters, logging) live in a single JSON
file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Bots, filters and switches are loaded from config.json so users can enable
# or retune a bot without editing code.
CONFIG_PATH = os.getenv("BOTWARDEN_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Where to store the SQLite database holding channel assignees.
DB_PATH = _CONFIG.get("db_path") or os.path.join(os.path.dirname(__file__), "botwarden.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Bot entries in configuration order; order decides who claims first.
BOTS_CONFIG = _CONFIG.get("bots", [])

# Direct messages have a single bot by nature, so they are left alone unless
# explicitly enabled.
MANAGE_DIRECT_MESSAGES = bool(_CONFIG.get("manage_direct_messages", False))

# Put back the assignees changed during this run when shutting down.
RESTORE_ON_SHUTDOWN = bool(_CONFIG.get("restore_on_shutdown", False))

# How long to wait for the other bots' copies of a message before arbitrating.
BATCH_WINDOW_MS = int(_CONFIG.get("batch_window_ms", 300))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
