"""Client-side data synchronization layer for the journal API."""
