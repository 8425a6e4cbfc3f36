"""Static resources embedded in the package."""
