"""Shared utilities: configuration, validation, formatting and HTTP clients."""
