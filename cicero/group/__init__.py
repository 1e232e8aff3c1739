"""Groups: models, the sync engine and group mutations."""
