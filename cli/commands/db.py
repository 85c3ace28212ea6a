# cli/commands/db.py
import click
from core.sa.database import get_database

@click.group()
def db():
    """Database commands"""
    pass

@db.command()
def init():
    """Create any missing tables"""
    database = get_database()
    database.init_db()
    click.echo(click.style("Database initialized: ", fg='green') +
               click.style(database.connection_string, fg='cyan'))
