"""Device positioning, location persistence, and address resolution."""
