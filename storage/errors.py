class AdStoreError(RuntimeError):
    """The data service could not answer a read."""
