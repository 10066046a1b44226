"""Typed identifiers and records shared across gbancord."""
