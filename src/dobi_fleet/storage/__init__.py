"""Ledger persistence backends."""
