"""Shared test entities, ORM models and the recording store stub."""
