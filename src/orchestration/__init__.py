"""Notebook-level orchestration: sweep submission and result collection."""
