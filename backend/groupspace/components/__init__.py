"""Domain components."""
