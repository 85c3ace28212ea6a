# core/sa/repositories/user.py
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from core.sa.models import User

class UserRepository:
    """Repository for managing User entities."""

    def __init__(self, session: Session):
        """Initialize the repository with a database session.
        
        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_subject(self, subject_id: Optional[str]) -> Optional[User]:
        """Get a user by the identity provider's subject ID.
        
        Args:
            subject_id: The stable subject identifier
            
        Returns:
            The User object if found, None otherwise
        """
        if not subject_id:
            return None
        return self.session.execute(
            select(User).where(User.subject_id == subject_id)
        ).scalar_one_or_none()

    def get_or_create(self, subject_id: str, name: str = "", email: Optional[str] = None) -> User:
        """Return the user for a subject, creating it on first sign-in.
        
        Args:
            subject_id: The stable subject identifier
            name: Display name to use when creating the user
            email: Optional email to use when creating the user
            
        Returns:
            The existing or newly created User object
        """
        user = self.get_by_subject(subject_id)
        if user:
            return user

        user = User(subject_id=subject_id, name=name, email=email)
        self.session.add(user)
        try:
            self.session.commit()
            return user
        except IntegrityError:
            # Created concurrently by another request
            self.session.rollback()
            return self.get_by_subject(subject_id)

    def update_user(self, user: User, **changes) -> User:
        for field, value in changes.items():
            setattr(user, field, value)
        self.session.commit()
        return user

    def list_users(self) -> List[User]:
        """All users ordered by name"""
        return list(self.session.execute(select(User).order_by(User.name)).scalars())
