"""Domain layer: entities, notification kinds and errors."""
