"""Event types, payloads and the per-client event bus."""
