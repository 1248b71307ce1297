"""Logging and metrics for resealer."""
