"""Git worktree helpers: a file-backed task queue, repository lookup, execution logs and display text."""

__version__ = "0.1.0"