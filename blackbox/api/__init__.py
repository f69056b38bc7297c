"""Blackbox REST API."""

from blackbox.api.app import create_app

__all__ = ["create_app"]
