"""Domain models and failure variants."""
