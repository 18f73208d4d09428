"""Shared helpers used across the domain and adapters."""
