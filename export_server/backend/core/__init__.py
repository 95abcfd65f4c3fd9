"""Core state shared by the export handlers."""
