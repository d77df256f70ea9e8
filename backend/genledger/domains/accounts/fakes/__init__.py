"""Fakes for the accounts domain."""
