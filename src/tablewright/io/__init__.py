"""I/O layer: connection drivers."""
