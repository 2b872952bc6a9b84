"""Command-line interface for CodeCraft."""
