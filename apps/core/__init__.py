"""
Core app for the newsroom.

Provides staff roles, the audit trail, error handling and observability.
"""
