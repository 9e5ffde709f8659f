"""Command line entry points for cuesync."""
