"""Incremental source: broker collaborators, configuration and the polling cycle."""
