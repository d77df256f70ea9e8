"""Core module for genledger."""
