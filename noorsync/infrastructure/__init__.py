"""Infrastructure layer: concrete backends for the contracts package."""
