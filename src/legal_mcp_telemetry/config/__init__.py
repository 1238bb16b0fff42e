"""Configuration models and environment-backed settings."""
