"""Infrastructure layer: persistence, mail, queue and realtime push."""
