"""User account service."""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from opentelemetry import trace

from auth import hash_password
from errors import ConflictError, DuplicateError, NotFoundError
from models import User
from monitoring import constraint_violations_counter
from schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service for managing user accounts."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def list_users(
        self,
        db: Session,
        is_active: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[User]:
        query = db.query(User)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        return query.order_by(User.id).offset(skip).limit(limit).all()

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def create_user(self, db: Session, data: UserCreate) -> User:
        """
        Register a user.

        Raises:
            DuplicateError: If username or email is already taken
        """
        self._check_unique(db, username=data.username, email=data.email)

        user = User(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            is_active=True
        )
        with self.tracer.start_as_current_span("db.transaction.create_user"):
            db.add(user)
            self._commit(db)
        db.refresh(user)

        logger.info("User created", extra={"user_id": user.id, "username": user.username})
        return user

    def update_user(self, db: Session, user_id: int, data: UserUpdate) -> User:
        user = self.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True)

        self._check_unique(
            db,
            username=changes.get("username"),
            email=changes.get("email"),
            exclude_id=user.id
        )

        password = changes.pop("password", None)
        if password is not None:
            user.password_hash = hash_password(password)
        for field, value in changes.items():
            setattr(user, field, value)

        self._commit(db)
        db.refresh(user)

        logger.info("User updated", extra={
            "user_id": user.id,
            "fields": sorted(changes) + (["password"] if password is not None else [])
        })
        return user

    def delete_user(self, db: Session, user_id: int) -> None:
        """Hard-delete a user; orders and their items go with it."""
        user = self.get_user(db, user_id)
        with self.tracer.start_as_current_span("db.transaction.delete_user") as db_span:
            db_span.set_attribute("user.id", user_id)
            db.delete(user)
            self._commit(db)
        logger.info("User deleted", extra={"user_id": user_id})

    def _check_unique(
        self,
        db: Session,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[int] = None
    ) -> None:
        for column, value in ((User.username, username), (User.email, email)):
            if value is None:
                continue
            query = db.query(User.id).filter(column == value)
            if exclude_id is not None:
                query = query.filter(User.id != exclude_id)
            if query.first() is not None:
                constraint_violations_counter.add(1, {"table": "users", "column": column.key})
                raise DuplicateError(column.key, value)

    def _commit(self, db: Session) -> None:
        # Backstop for a concurrent writer racing past _check_unique.
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            constraint_violations_counter.add(1, {"table": "users"})
            logger.warning("User write rejected by constraint", extra={"error": str(e.orig)})
            raise ConflictError("User violates a database constraint")
