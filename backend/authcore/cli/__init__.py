"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .users import users_cli


def init_app(app: Flask) -> None:
    """Register application-specific CLI command groups.

    Parameters
    ----------
    app:
        Flask application instance whose CLI registry receives the ``users``
        command group.
    """
    app.cli.add_command(users_cli)
