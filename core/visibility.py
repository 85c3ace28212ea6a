# core/visibility.py
"""Who may see or change a book or a reading list.

Every decision here is a pure function of the caller's user id, the resource's
owner id and the resource's visibility. ``None`` as a caller id means the
request is anonymous (or the authenticated subject has no user record yet),
which can never match an owner.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Protocol, TypeVar

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from core.errors import NotFoundError, UnauthorizedError


class Visibility(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    UNLISTED = "UNLISTED"  # viewable with a direct link, never listed


class OwnedResource(Protocol):
    owner_id: int
    visibility: Visibility


@dataclass(frozen=True)
class Caller:
    """The identity a request acts as"""
    subject_id: Optional[str] = None
    user_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


ANONYMOUS = Caller()


@dataclass(frozen=True)
class Permission:
    is_owner: bool
    can_view: bool
    can_edit: bool
    can_delete: bool


def is_owner(caller_id: Optional[int], resource: OwnedResource) -> bool:
    return caller_id is not None and caller_id == resource.owner_id


def can_view(caller_id: Optional[int], resource: OwnedResource) -> bool:
    if is_owner(caller_id, resource):
        return True
    return Visibility(resource.visibility) in (Visibility.PUBLIC, Visibility.UNLISTED)


def can_edit(caller_id: Optional[int], resource: OwnedResource) -> bool:
    return is_owner(caller_id, resource)


def can_delete(caller_id: Optional[int], resource: OwnedResource) -> bool:
    return is_owner(caller_id, resource)


def permissions_for(caller_id: Optional[int], resource: OwnedResource) -> Permission:
    owner = is_owner(caller_id, resource)
    return Permission(
        is_owner=owner,
        can_view=can_view(caller_id, resource),
        can_edit=owner,
        can_delete=owner,
    )


def list_filter(caller_id: Optional[int], model) -> ColumnElement[bool]:
    """Build the WHERE clause for listing ``model`` rows the caller may see.

    The clause is meant to be pushed into the query so pagination counts only
    visible rows. UNLISTED rows are reachable by id but never listed.
    """
    public = model.visibility == Visibility.PUBLIC
    if caller_id is None:
        return public
    return or_(public, model.owner_id == caller_id)


E = TypeVar("E")


def visible_entries(caller_id: Optional[int], reading_list: OwnedResource, entries: Iterable[E]) -> List[E]:
    """Filter reading-list entries by the visibility of their books.

    The owner of the list sees every entry. Anyone else only sees entries
    whose book is itself PUBLIC, whatever the list's own visibility.
    """
    if is_owner(caller_id, reading_list):
        return list(entries)
    return [entry for entry in entries if Visibility(entry.book.visibility) == Visibility.PUBLIC]


def require_viewable(caller_id: Optional[int], resource: Optional[OwnedResource], noun: str = "Resource") -> OwnedResource:
    """Return the resource if the caller may see it.

    A resource the caller may not see is reported exactly like a missing one
    so that private ids cannot be probed.
    """
    if resource is None or not can_view(caller_id, resource):
        raise NotFoundError(f"{noun} not found")
    return resource


def require_owner(caller_id: Optional[int], resource: Optional[OwnedResource], noun: str = "resource") -> OwnedResource:
    """Return the resource if the caller owns it.

    Non-owners who may not even see the resource get NotFoundError.
    """
    if resource is None or not can_view(caller_id, resource):
        raise NotFoundError(f"{noun.capitalize()} not found")
    if caller_id is None:
        raise UnauthorizedError("Authentication required")
    if not is_owner(caller_id, resource):
        raise UnauthorizedError(f"Unauthorized - you don't own this {noun}")
    return resource
