"""WebSocket signalling server that relays messages between peers and tracks who is online."""

__version__ = "1.0.0"