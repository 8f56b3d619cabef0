"""
homeconfig: Home screen configuration service for the mobile app editor.

A signed service-to-service storage API (API key + HMAC-SHA256 request
signatures with a replay window) plus the editor-side client and CLI.
"""

__version__ = "1.0.0"
