"""Application layer: dispatch service and notification center use cases."""
