"""Identity-scoped services called by request-handling code."""
