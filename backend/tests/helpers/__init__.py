"""Tiny helpers shared across test modules."""
