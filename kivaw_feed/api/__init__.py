"""HTTP API for the feed composition engine."""
