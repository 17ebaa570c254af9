"""stablepack: incremental module bundler with stable chunk identities."""
