"""Tether REST API module."""

from tether_core.api.app import create_rest_app

__all__ = ["create_rest_app"]
