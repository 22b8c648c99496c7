"""Exception types for storage and remote sync failures."""


class StorageUnavailableError(Exception):
    """Local durable store backend could not be reached."""

    pass


class RemoteStoreError(Exception):
    """Remote snapshot store request failed (transport or unexpected status)."""

    pass
