"""Domain services for the loyalty backend."""
