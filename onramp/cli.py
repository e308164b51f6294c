"""Flask CLI commands for database setup and maintenance."""

import click
from flask import Flask

from onramp.extensions import db
from onramp.services.container import get_services


def register_cli(app: Flask) -> None:

    @app.cli.command("init-db")
    def init_db():
        """Create all database tables."""
        db.create_all()
        click.echo("✅ Database initialized successfully!")

    @app.cli.command("seed-rates")
    def seed_rates():
        """Store development seed prices for every supported token."""
        symbols = get_services().rates.seed()
        click.echo(f"✅ Seeded rates for {', '.join(symbols)}")

    @app.cli.command("refresh-rates")
    def refresh_rates():
        """Fetch live prices from the price feed."""
        symbols = get_services().rates.refresh()
        if symbols:
            click.echo(f"✅ Refreshed rates for {', '.join(symbols)}")
        else:
            click.echo("⚠️  Price feed unavailable, no rates refreshed.")

    @app.cli.command("cleanup-sessions")
    def cleanup_sessions():
        """Delete expired payment sessions."""
        removed = get_services().sessions.cleanup_expired()
        click.echo(f"✅ Removed {removed} expired payment session(s)")
