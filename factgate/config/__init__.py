"""Configuration: settings, logging and built-in pattern libraries."""
