"""Command-line interface for struct-canvas."""
