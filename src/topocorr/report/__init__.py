"""Chart and report writers."""
