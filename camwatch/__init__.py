"""camwatch - Run hooks when a video device is opened or closed."""

__version__ = "0.1.0"
