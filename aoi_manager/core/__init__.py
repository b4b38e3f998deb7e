"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants (layer names, map defaults, unit conversions)
- exceptions: Custom exception hierarchy
"""
