"""SQL for the gban, guild and log channel tables."""
