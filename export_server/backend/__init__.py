"""Backend layers of the export server."""
