"""Utility modules for tablewright."""
