"""Command-line interface for Threat Map."""
