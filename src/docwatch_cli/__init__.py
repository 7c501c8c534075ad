"""
CLI (Command Line Interface) for the documentation change monitor.

This is a thin wrapper around the core engine. All business logic lives
in the docwatch package.
"""
