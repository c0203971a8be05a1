"""Domain layer - entities, exceptions and ports of the auth session."""
