"""
CLI Client Module.

Command-line client built with Typer for communicating with the
SimpleNotes API.

Architecture:
- CLI is a thin presentation layer
- All business logic lives in the backend
- CLI calls backend via HTTP (httpx), retrying GET requests on network errors
- Sends X-Frontend-ID: cli header for log routing

Usage:
    python cli.py --help
    python cli.py health status
    python cli.py notes list
"""
