"""Quick-entry parsing, disambiguation and idempotent write pipeline."""
