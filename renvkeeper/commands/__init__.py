"""CLI subcommand implementations for renvkeeper."""
