"""
Durable per-user state: identity key, upload history and payment flag.

All writes commit before returning. Any SQLAlchemy failure is rolled back and
re-raised as InfrastructureError so routes never leak driver errors.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError, InfrastructureError, NotFoundError
from app.core.plan_limits import check_upload_allowed
from app.models.upload import Upload
from app.models.user import User

logger = logging.getLogger(__name__)


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_identity(self, identity_key: str) -> Optional[User]:
        try:
            return (
                self.db.query(User)
                .filter(User.identity_key == identity_key)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self._fail("find user", identity_key, e)

    def create_if_absent(self, identity_key: str) -> Tuple[User, bool]:
        """
        Return (user, created). Creating an existing user is a no-op.
        """
        user = self.find_by_identity(identity_key)
        if user:
            return user, False

        try:
            user = User(identity_key=identity_key, has_paid=False)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            logger.info("[Users] Created user record for %s", identity_key)
            return user, True
        except IntegrityError:
            # Another request inserted the same identity key first
            self.db.rollback()
            existing = self.find_by_identity(identity_key)
            if existing:
                logger.info("[Users] User %s created by concurrent request", identity_key)
                return existing, False
            raise InfrastructureError("User account exists but could not be retrieved")
        except SQLAlchemyError as e:
            self._fail("create user", identity_key, e)

    def count_uploads(self, identity_key: str) -> int:
        try:
            return (
                self.db.query(func.count(Upload.id))
                .join(User, Upload.user_id == User.id)
                .filter(User.identity_key == identity_key)
                .scalar()
            ) or 0
        except SQLAlchemyError as e:
            self._fail("count uploads", identity_key, e)

    def append_upload(
        self,
        identity_key: str,
        file_name: str,
        transcription: str,
        limit: Optional[int] = None,
    ) -> User:
        """
        Append an upload entry.

        When ``limit`` is given the user row is locked and the free-tier gate
        is re-checked inside the same transaction, so two concurrent uploads
        cannot both take the last free slot.
        """
        try:
            query = self.db.query(User).filter(User.identity_key == identity_key)
            if limit is not None:
                query = query.with_for_update()
            user = query.first()
            if not user:
                self.db.rollback()
                raise NotFoundError()

            if limit is not None:
                current = self.db.query(func.count(Upload.id)).filter(Upload.user_id == user.id).scalar() or 0
                decision = check_upload_allowed(user.has_paid, current, limit)
                if not decision.allowed:
                    self.db.rollback()
                    raise ForbiddenError(reason=decision.reason)

            self.db.add(Upload(user_id=user.id, file_name=file_name, transcription=transcription))
            self.db.commit()
            self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            self._fail("append upload", identity_key, e)

    def set_paid(self, identity_key: str, paid: bool = True) -> User:
        try:
            user = self.db.query(User).filter(User.identity_key == identity_key).first()
            if not user:
                raise NotFoundError()
            if user.has_paid != paid:
                user.has_paid = paid
                self.db.commit()
                self.db.refresh(user)
                logger.info("[Users] has_paid=%s for %s", paid, identity_key)
            return user
        except SQLAlchemyError as e:
            self._fail("set paid flag", identity_key, e)

    def _fail(self, action: str, identity_key: str, exc: Exception):
        self.db.rollback()
        logger.exception("[Users] Database error during %s for %s: %s", action, identity_key, exc)
        raise InfrastructureError("Database temporarily unavailable. Please try again in a moment.") from exc
