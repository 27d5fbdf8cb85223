"""General utilities shared by all algorithms."""
