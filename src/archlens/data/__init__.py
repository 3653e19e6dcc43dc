"""Bundled reference data (authority seed list)."""
