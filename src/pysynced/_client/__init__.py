"""Internal engine operations for :class:`pysynced.client.SyncClient`."""
