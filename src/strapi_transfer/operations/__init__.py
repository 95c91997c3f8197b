"""Reusable operations built on top of the HTTP client."""
