"""Configuration for the mailpass auth server."""
