"""Internal display utilities."""
