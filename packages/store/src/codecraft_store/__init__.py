"""Document store and record schema for CodeCraft review history."""
