"""Integrations with persistence and outbound email."""
