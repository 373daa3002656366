"""Event sources: inotify watches and the process table."""
