"""
Configuration for gbancord.

- **app_configuration.py**: YAML application config (founders, database path,
  gban engine timings, inactive guild pruning).
"""
