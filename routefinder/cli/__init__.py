"""Command line interface for the route finder."""
