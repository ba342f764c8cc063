"""Domain layer: entity-agnostic models, contracts, services and repositories."""
