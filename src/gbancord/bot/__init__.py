"""Discord-facing layer: py-cord adapters for the engine and the cogs."""
