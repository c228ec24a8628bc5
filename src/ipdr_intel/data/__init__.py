"""Data layer - schemas, validators and synthetic generators."""
