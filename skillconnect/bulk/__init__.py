"""Bulk user operations: import, export, update, delete and email jobs."""
