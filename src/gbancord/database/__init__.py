"""
Database package for gbancord.

Provides the single long-lived aiosqlite connection and the schema it
creates on first open.

Public API:
    - ConnectionManager: connection lifecycle plus read/write contexts
    - SchemaManager: table and index creation
"""
