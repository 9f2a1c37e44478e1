"""Contract interface descriptions."""
