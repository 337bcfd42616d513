"""Utility functions for DocGraph."""
