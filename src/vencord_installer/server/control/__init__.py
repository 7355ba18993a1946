"""Handshake gate, session loop and operation dispatch for bridge connections."""
