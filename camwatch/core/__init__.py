"""Event loop and debouncing."""
