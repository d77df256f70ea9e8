"""genledger: subscription and credit ledger engine."""
