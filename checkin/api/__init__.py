"""HTTP surface for the check-in service."""
