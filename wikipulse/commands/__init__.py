"""Command implementations backing the click CLI."""
