"""
Core modules for stickermock.

This package contains the generation pipeline:
- Configuration and credential management
- Image encoding and request building
- The HTTP client and response parsing
- The generation state machine
"""
