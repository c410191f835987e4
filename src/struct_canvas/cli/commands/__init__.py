"""CLI commands for struct-canvas."""
