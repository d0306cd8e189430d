"""Adapters connecting the core engine to Telegram, SQLite and the CLI."""
