"""Shared utilities for ddl2data."""
