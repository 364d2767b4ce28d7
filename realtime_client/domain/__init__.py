"""Domain state kept by the client: the conversation transcript and session configuration."""
