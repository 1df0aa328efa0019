"""Utility modules for payload projection."""
