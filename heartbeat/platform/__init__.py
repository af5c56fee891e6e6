"""Cross-cutting platform pieces: errors and caller identity."""
