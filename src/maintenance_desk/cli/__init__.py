"""Command-line interface for the maintenance desk."""
