# cli/commands/admin.py
import click
from core.errors import ShelfError
from core.sa.database import get_database
from core.services.default_viewer import DefaultViewerResolver
from ..utils import echo_error

@click.group()
def admin():
    """Administrative commands"""
    pass

@admin.command(name='set-default-viewer')
@click.argument('default_subject', required=False)
@click.option('--subject', required=True, help='Subject id of the administrator')
@click.option('--clear', is_flag=True, help='Remove the default viewer')
def set_default_viewer(default_subject: str, subject: str, clear: bool):
    """Choose whose profile anonymous visitors see"""
    if not clear and not default_subject:
        raise click.UsageError("Give a subject id or --clear")
    session = get_database().get_session()
    try:
        try:
            row = DefaultViewerResolver(session).set_default_viewer(subject, None if clear else default_subject)
        except ShelfError as e:
            echo_error(e)
            raise SystemExit(1)
        value = row.default_user_subject_id
        click.echo(click.style("Default viewer: ", fg='blue') +
                   click.style(value or "(not set)", fg='cyan'))
    finally:
        session.close()

@admin.command(name='show-default-viewer')
def show_default_viewer():
    """Show which profile anonymous visitors see"""
    session = get_database().get_session()
    try:
        resolver = DefaultViewerResolver(session)
        try:
            user = resolver.resolve_anonymous_subject()
        except ShelfError as e:
            echo_error(e)
            raise SystemExit(1)
        click.echo(click.style("Default viewer: ", fg='blue') +
                   click.style(f"{user.name or '(no name)'} ({user.subject_id})", fg='cyan'))
    finally:
        session.close()
