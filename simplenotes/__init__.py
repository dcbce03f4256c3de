"""
SimpleNotes.

- backend/: REST API, connection supervision, database, configuration
- cli/: Command-line client (Typer + Rich)
"""
