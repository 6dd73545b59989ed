"""Scheduling engine services.

Import services directly from their modules to avoid circular imports.
"""
