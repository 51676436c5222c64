"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Archive, render and wire-message constants
- exceptions: Custom exception hierarchy
- ingress: HTTP request/response mapping for the entrypoints
"""
