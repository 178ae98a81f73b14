"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Polling defaults and task resource keys
- exceptions: Custom exception hierarchy
"""
