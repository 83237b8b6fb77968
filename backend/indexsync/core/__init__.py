"""Core settings and logging for indexsync."""
