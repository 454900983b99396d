"""Party check-in registration service."""
