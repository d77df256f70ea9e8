"""Fakes for the credits domain."""
