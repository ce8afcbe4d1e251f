"""Command-line login client for a mailpass auth server."""
