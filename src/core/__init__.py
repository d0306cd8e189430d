"""Core domain package for botwarden.

Core contains mention extraction, filter evaluation, classification and
assignee arbitration without any Telegram or storage-specific code, keeping
the business logic portable.
"""
