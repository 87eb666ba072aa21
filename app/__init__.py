"""XENTRO backend."""
