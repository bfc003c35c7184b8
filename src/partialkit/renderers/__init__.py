"""Jinja2 filters and tests registered on every Partialkit environment."""
