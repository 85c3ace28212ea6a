# cli/commands/lists.py
import click
from core.client.list_editor import ListSnapshot, ReadingListEditor
from core.errors import ShelfError
from core.sa.database import get_database
from core.services.reading_lists import ReadingListService, ReadingListView
from ..utils import echo_error, resolve_caller

@click.group()
def lists():
    """Reading list commands"""
    pass

def _print_view(view: ReadingListView):
    reading_list = view.reading_list
    click.echo(click.style(reading_list.title, fg='cyan', bold=True) +
               click.style(f"  [{reading_list.visibility.value}, version {reading_list.version}]", fg='blue'))
    if reading_list.description:
        click.echo(reading_list.description)
    if not view.entries:
        click.echo(click.style("(no books)", fg='yellow'))
    for entry in view.entries:
        line = f"{entry.position + 1:>3}. {entry.book.title} (book {entry.book_id})"
        click.echo(line)
        if entry.notes:
            click.echo(click.style(f"     {entry.notes}", fg='blue'))

@lists.command()
@click.argument('list_id', type=int)
@click.option('--subject', default=None, help='Subject id to view as (anonymous if omitted)')
def show(list_id: int, subject: str):
    """Show a reading list as a given user would see it"""
    session = get_database().get_session()
    try:
        caller = resolve_caller(session, subject)
        try:
            view = ReadingListService(session).get_list(caller, list_id)
        except ShelfError as e:
            echo_error(e)
            raise SystemExit(1)
        _print_view(view)
    finally:
        session.close()

@lists.command()
@click.argument('list_id', type=int)
@click.argument('book_ids', nargs=-1, type=int, required=True)
@click.option('--subject', required=True, help='Subject id of the list owner')
@click.option('--expected-version', type=int, default=None,
              help='Version the new order is based on (defaults to the current version)')
def reorder(list_id: int, book_ids, subject: str, expected_version: int):
    """Set the complete order of a reading list

    Example:
        shelf-companion lists reorder 3 12 7 9 --subject alice
    """
    session = get_database().get_session()
    try:
        caller = resolve_caller(session, subject)
        service = ReadingListService(session)

        def fetch(target_id: int) -> ListSnapshot:
            view = service.get_list(caller, target_id)
            return ListSnapshot(target_id, view.version, view.book_ids)

        def submit(target_id: int, ordered, version: int) -> ListSnapshot:
            view = service.reorder(caller, target_id, ordered, expected_version=version)
            return ListSnapshot(target_id, view.version, view.book_ids)

        editor = ReadingListEditor(list_id, fetch, submit)
        try:
            editor.load()
        except ShelfError as e:
            echo_error(e)
            raise SystemExit(1)
        if expected_version is not None:
            editor.snapshot.version = expected_version

        try:
            accepted = editor.reorder(list(book_ids))
        except ShelfError as e:
            echo_error(e)
            raise SystemExit(1)

        if accepted:
            click.echo(click.style(f"New order saved (version {editor.version})", fg='green'))
        else:
            echo_error(editor.last_error, "Reorder rejected")
            click.echo(click.style("Current order on the server:", fg='yellow'))
        _print_view(service.get_list(caller, list_id))
        if not accepted:
            raise SystemExit(1)
    finally:
        session.close()
