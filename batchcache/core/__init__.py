"""Core infrastructure: configuration, logging, exceptions, database."""
