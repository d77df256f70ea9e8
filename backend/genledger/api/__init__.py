"""HTTP boundary of genledger."""
