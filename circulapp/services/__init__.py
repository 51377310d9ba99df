"""Logique métier sans I/O / Business logic without I/O."""
