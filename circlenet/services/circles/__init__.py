"""Circles services."""
