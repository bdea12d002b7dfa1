"""Logging, configuration and scenario loading utilities."""
