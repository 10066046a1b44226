"""
Periodic background tasks.

- **guild_prune_scheduler.py**: removes guilds without activity for longer than
  the configured number of days from the gban target list.
"""
