"""
Test suite for the realtime socket client.

This package contains tests for all components of the client:
- Config: Settings loaded from environment variables
- Connection: Connect, drop, backoff and reconnect exhaustion
- API Client: Outbound instructions and inbound state tracking
- Event System: Typed events and subscriptions
- Transcription: Ordered conversation item store
- Session Config: Session defaults, merging and backend rules
- Tokens: Ephemeral credential issuance
"""

__version__ = "0.3.0"
