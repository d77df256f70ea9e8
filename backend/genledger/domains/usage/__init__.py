"""Usage domain: admission control for metered actions and reservation cleanup."""
