"""HTTP routes for the levtrade service."""
