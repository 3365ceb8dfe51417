"""Network engines."""
