# cli/main.py
import logging
import click
from .commands.db import db
from .commands.books import books
from .commands.lists import lists
from .commands.admin import admin

@click.group()
@click.option('--verbose/--no-verbose', default=False, help='Log debug output')
def cli(verbose: bool):
    """Shelf Companion CLI"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

cli.add_command(db)
cli.add_command(books)
cli.add_command(lists)
cli.add_command(admin)

def main():
    """Entry point for the CLI"""
    cli()

if __name__ == '__main__':
    main()
