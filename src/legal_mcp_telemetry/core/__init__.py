"""Logging and exception primitives shared across the pipeline."""
