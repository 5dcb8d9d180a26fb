"""Command-line interface for inspecting study snapshots."""
