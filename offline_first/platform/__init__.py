"""Platform components: registry, storage, transport, connectivity and sync."""
