"""
Town Kernel - shared infrastructure for the municipal finance back office.

Provides the pieces every pipeline package leans on:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Injectable clock for deterministic batch identifiers
"""

__version__ = "0.1.0"
