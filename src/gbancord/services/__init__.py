"""
Services wrapping the repositories with the shared connection.

- **ban_store.py**: active and pending gbans (the engine's Ban Store).
- **target_directory.py**: registered guilds (the engine's Target Directory).
- **log_channel_service.py**: channels receiving gban log posts.
"""
