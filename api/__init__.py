"""HTTP boundary for the mailpass auth server."""
