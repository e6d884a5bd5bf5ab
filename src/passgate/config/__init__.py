"""Configuration - pydantic-settings backed application settings."""
