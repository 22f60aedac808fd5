"""Cozy Defense web service: HTTP input boundary and WebSocket state stream."""
