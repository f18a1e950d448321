import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_directory import UserDirectory, UserDto

logger = logging.getLogger(__name__)


class SqlUserDirectory(UserDirectory):
    """Users keyed by mobile number.

    ``resolve_or_create`` leans on the unique index on ``users.mobile``: when
    two requests race to create the same user, the loser's insert fails, it
    rolls back and reads the winner's row.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(id=user.id, mobile=user.mobile)

    def _find_by_mobile(self, session: Session, mobile: str) -> Optional[User]:
        return session.exec(select(User).where(User.mobile == mobile)).first()

    def get_by_mobile(self, mobile: str) -> Optional[UserDto]:
        with Session(self.engine) as session:
            user = self._find_by_mobile(session, mobile)
            return self._to_dto(user) if user else None

    def resolve_or_create(self, mobile: str) -> UserDto:
        with Session(self.engine) as session:
            user = self._find_by_mobile(session, mobile)
            if user:
                return self._to_dto(user)

            user = User(mobile=mobile)
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.info("Concurrent user creation detected, reusing existing record")
                user = self._find_by_mobile(session, mobile)
                if user is None:
                    raise
                return self._to_dto(user)

            session.refresh(user)
            logger.info(f"Provisioned user {user.id}")
            return self._to_dto(user)
