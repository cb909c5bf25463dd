"""Core module: configuration, logging and exceptions."""
