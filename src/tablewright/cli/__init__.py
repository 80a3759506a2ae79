"""Command-line tools for tablewright."""
