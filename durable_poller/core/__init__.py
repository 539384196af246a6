"""Core utilities and shared infrastructure.

- backoff: Deterministic wait-interval calculations
- config: Configuration loading and validation
- constants: Function names, status codes, status-document fields
- exceptions: Custom exception hierarchy
- ingress: Entry-point payload decoding and validation
"""
