"""Logging and metrics for Blackbox."""
