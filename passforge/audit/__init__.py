"""Audit trail for signing operations."""
