"""Fakes for the billing domain."""
