"""Post body renderers."""
