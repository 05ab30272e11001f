"""Session lifecycle logic: the handshake state machine and its cleanup."""
