"""certgen display utilities."""
