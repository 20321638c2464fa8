"""Camera capture."""
