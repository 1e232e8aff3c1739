"""Authentication: server-side token checks and the client session."""
