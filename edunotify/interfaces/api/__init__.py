"""HTTP API for the notification center."""
