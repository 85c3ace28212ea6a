# core/resolvers/metadata.py

import logging
import re
from typing import Any, Dict, List, Optional

from core.isbn import validate_lookup_identifier
from core.models.book import CandidateRecord, REQUIRED_METADATA_FIELDS, is_missing
from core.sa.repositories.book import BookRepository
from core.utils.http import IsbnDbClient

logger = logging.getLogger(__name__)

_DATE_PREFIX = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?")

class MetadataResolver:
    def __init__(self, client: Optional[IsbnDbClient] = None, book_repository: Optional[BookRepository] = None):
        self.client = client or IsbnDbClient()
        self.book_repository = book_repository

    def resolve(self, identifier: str, owner_id: Optional[int] = None) -> CandidateRecord:
        """
        Resolves an ISBN into a candidate record by:
          1. Validating the identifier locally (no network call for bad input).
          2. Fetching the provider record (a single outbound request).
          3. Flagging the record incomplete when any required field is empty.
          4. Flagging it a duplicate when the owner's library already has its ISBN-13.

        Returns:
            The CandidateRecord. Incomplete records are still returned.

        Raises:
            ValidationError, NotFoundError, RequestTimeoutError, NetworkError, ProviderError
        """
        isbn = validate_lookup_identifier(identifier)
        raw = self.client.fetch_book(isbn)
        data = normalize_record(raw)

        missing = [field for field in REQUIRED_METADATA_FIELDS if is_missing(data.get(field))]
        if missing:
            logger.info(f"Record for {isbn} is incomplete, missing: {', '.join(missing)}")

        is_duplicate = False
        if owner_id is not None and self.book_repository is not None:
            is_duplicate = self.book_repository.exists_for_owner(owner_id, data.get('isbn13'))

        return CandidateRecord(**data, is_incomplete=bool(missing), is_duplicate=is_duplicate)

def normalize_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map a provider record onto book fields"""
    return {
        'title': _text(raw.get('title')) or "",
        'title_long': _text(raw.get('title_long')),
        'authors': _strings(raw.get('authors')),
        'isbn10': _text(raw.get('isbn10') or raw.get('isbn')),
        'isbn13': _text(raw.get('isbn13')),
        'publisher': _text(raw.get('publisher')),
        'synopsis': _text(raw.get('synopsis') or raw.get('overview')),
        'pages': _int(raw.get('pages')),
        'date_published': _date(raw.get('date_published')),
        'subjects': _strings(raw.get('subjects')),
        'binding': _text(raw.get('binding')),
        'language': _text(raw.get('language')),
        'edition': _text(raw.get('edition')),
        'image': _text(raw.get('image')),
        'image_original': _text(raw.get('image_original')),
    }

def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None

def _strings(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    return [s for s in (_text(v) for v in value) if s]

def _int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None

def _date(value: Any) -> Optional[str]:
    text = _text(value)
    if not text:
        return None
    match = _DATE_PREFIX.match(text)
    return match.group(0) if match else None
