"""Shared utilities: configuration, validation and performance monitoring."""
