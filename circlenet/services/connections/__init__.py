"""Connections services."""
