"""Request controllers for the handshake service."""
