# cli/commands/books.py
import click
from core.client.import_queue import ImportQueue
from core.errors import ShelfError
from core.resolvers.metadata import MetadataResolver
from core.sa.database import get_database
from core.sa.repositories.book import BookRepository
from core.services.importer import BookImporter
from core.visibility import Visibility
from ..utils import ProgressTracker, create_progress_bar, echo_error, resolve_caller

@click.group()
def books():
    """Book lookup and import commands"""
    pass

@books.command()
@click.argument('isbn')
@click.option('--subject', default=None, help='Subject id to act as (flags books already in that library)')
def lookup(isbn: str, subject: str):
    """Look up an ISBN with the metadata provider

    Example:
        shelf-companion books lookup 9780141439518 --subject alice
    """
    session = get_database().get_session()
    try:
        caller = resolve_caller(session, subject)
        resolver = MetadataResolver(book_repository=BookRepository(session))
        try:
            candidate = resolver.resolve(isbn, owner_id=caller.user_id)
        except ShelfError as e:
            echo_error(e, "Lookup failed")
            raise SystemExit(1)

        click.echo(click.style(candidate.title or "(untitled)", fg='cyan', bold=True))
        click.echo(click.style("Authors: ", fg='blue') + ", ".join(candidate.authors))
        click.echo(click.style("ISBN-13: ", fg='blue') + (candidate.isbn13 or "-"))
        click.echo(click.style("Publisher: ", fg='blue') + (candidate.publisher or "-"))
        click.echo(click.style("Published: ", fg='blue') + (candidate.date_published or "-"))
        if candidate.is_incomplete:
            click.echo(click.style("Some details are missing from this record", fg='yellow'))
        if candidate.is_duplicate:
            click.echo(click.style("Already in your library", fg='yellow'))
    finally:
        session.close()

@books.command(name='import')
@click.argument('isbns', nargs=-1, required=True)
@click.option('--subject', required=True, help='Subject id of the library owner')
@click.option('--visibility', type=click.Choice([v.value for v in Visibility]), default=Visibility.PUBLIC.value,
              help='Visibility of the imported books')
@click.option('--skip-incomplete/--include-incomplete', default=False, help='Leave out records with missing details')
@click.option('--verbose/--no-verbose', default=False, help='Show detailed progress')
def import_books(isbns, subject: str, visibility: str, skip_incomplete: bool, verbose: bool):
    """Resolve ISBNs and import them into a library

    Each ISBN is looked up, queued, and the queue is committed as one batch.
    Failures are retried automatically after 1s, 2s and 4s; after that you
    are asked whether to retry again.

    Example:
        shelf-companion books import 9780141439518 9780261103573 --subject alice
    """
    session = get_database().get_session()
    try:
        caller = resolve_caller(session, subject)
        if not caller.is_authenticated:
            click.echo(click.style(f"No user with subject {subject}. Sign in through the web app first.", fg='red'), err=True)
            raise SystemExit(1)

        resolver = MetadataResolver(book_repository=BookRepository(session))
        importer = BookImporter(session)
        queue = ImportQueue(
            submit=lambda rows: importer.import_books(caller.user_id, rows, visibility=Visibility(visibility))
        )
        tracker = ProgressTracker(verbose)

        with create_progress_bar(list(isbns), verbose, 'Resolving', lambda x: x) as bar:
            for isbn in bar:
                tracker.increment_processed()
                try:
                    candidate = resolver.resolve(isbn, owner_id=caller.user_id)
                except ShelfError as e:
                    tracker.add_skipped(isbn, isbn, f"{e.category}: {e.message}", 'red')
                    continue
                if candidate.is_duplicate:
                    tracker.duplicates += 1
                    tracker.add_skipped(candidate.title, isbn, "Already in library")
                    continue
                if candidate.is_incomplete and skip_incomplete:
                    tracker.add_skipped(candidate.title, isbn, "Incomplete record")
                    continue
                queue.add(candidate)

        if not len(queue):
            click.echo(click.style("\nNothing to import", fg='yellow'))
            tracker.print_results('ISBNs')
            return

        click.echo(click.style(f"\nImporting {len(queue)} books...", fg='blue'))
        try:
            dropped = 0
            result = queue.commit()
            while not result.success and result.requires_manual_retry:
                click.echo(click.style(result.describe(), fg='red'))
                if not click.confirm("Retry now?", default=False):
                    break
                if result.created_isbn13s and click.confirm(
                        "Drop the books that were already imported?", default=True):
                    dropped += queue.drop_succeeded()
                result = queue.retry()
        except KeyboardInterrupt:
            queue.cancel()
            click.echo(click.style("\nImport cancelled", fg='yellow'))
            return

        tracker.imported = result.created + dropped
        tracker.duplicates += result.duplicates
        if result.success:
            click.echo(click.style(result.describe(), fg='green'))
        elif not result.requires_manual_retry:
            click.echo(click.style(result.describe(), fg='red'))
        tracker.print_results('ISBNs')
        if not result.success:
            raise SystemExit(1)
    finally:
        session.close()
