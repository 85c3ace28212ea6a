import click
from typing import List, Any, Callable, Optional, Dict
from sqlalchemy.orm import Session

from core.errors import ShelfError
from core.sa.repositories.user import UserRepository
from core.visibility import ANONYMOUS, Caller

class ProgressTracker:
    """Tracks progress and skipped items while resolving and importing books"""

    def __init__(self, verbose: bool = False):
        self.processed = 0
        self.imported = 0
        self.duplicates = 0
        self.skipped: List[Dict[str, str]] = []
        self.verbose = verbose

    def add_skipped(self, name: str, id: str, reason: str, color: str = 'yellow'):
        """Add a skipped item to the tracking"""
        if self.verbose or color == 'red':  # Always track errors
            self.skipped.append({
                'name': name,
                'id': id,
                'reason': reason,
                'color': color
            })

    def increment_processed(self):
        self.processed += 1

    def print_results(self, item_type: str = 'items'):
        """Print the results of the operation"""
        click.echo("\n" + click.style("Results:", fg='blue'))
        click.echo(click.style("Processed: ", fg='blue') +
                  click.style(str(self.processed), fg='cyan') +
                  click.style(f" {item_type}", fg='blue'))
        click.echo(click.style("Imported: ", fg='blue') +
                  click.style(str(self.imported), fg='green') +
                  click.style(" books", fg='blue'))
        if self.duplicates:
            click.echo(click.style("Already in library: ", fg='blue') +
                      click.style(str(self.duplicates), fg='yellow'))

        if self.skipped and self.verbose:
            click.echo("\n" + click.style("Skipped items:", fg='yellow'))
            for skip_info in self.skipped:
                click.echo("\n" + click.style(f"Name: {skip_info['name']}", fg=skip_info['color']))
                click.echo(click.style(f"ISBN: {skip_info['id']}", fg=skip_info['color']))
                click.echo(click.style(f"Reason: {skip_info['reason']}", fg=skip_info['color']))
        elif self.skipped:
            click.echo(click.style(f"\nSkipped {len(self.skipped)} items. ", fg='yellow') +
                      click.style("Use --verbose to see details.", fg='blue'))

def create_progress_bar(items: List[Any], verbose: bool = False,
                       label: str = 'Processing',
                       item_name_func: Optional[Callable[[Any], str]] = None) -> click.progressbar:
    """Create a standardized progress bar"""
    return click.progressbar(
        items,
        label=click.style(label, fg='blue'),
        item_show_func=lambda x: click.style(item_name_func(x), fg='cyan') if x and verbose and item_name_func else None,
        show_eta=True,
        show_percent=True,
        width=50
    )

def resolve_caller(session: Session, subject: Optional[str]) -> Caller:
    """Act as ``subject``, or anonymously when no subject is given"""
    if not subject:
        return ANONYMOUS
    user = UserRepository(session).get_by_subject(subject)
    return Caller(subject_id=subject, user_id=user.id if user else None)

def echo_error(error: ShelfError, prefix: str = "Error"):
    click.echo(click.style(f"{prefix} ({error.category}): {error.message}", fg='red'), err=True)
