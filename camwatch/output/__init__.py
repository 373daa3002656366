"""Hook script output."""
