"""
Text rendered to Discord.

- **gban_messages.py**: status message, log channel and lookup texts, each log
  post tagged with a searchable hashtag.
"""
