"""Content-store clients."""
