"""
Utility functions and helpers for gbancord.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log files. Suppresses noise from
  verbose libraries (Discord internals, aiohttp, aiosqlite). Uses prompt_toolkit
  for console output that does not break an active prompt.
"""
