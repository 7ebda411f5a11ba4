"""Command-line tools for the Sage SRS scheduler."""
