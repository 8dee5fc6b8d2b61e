from typing import List, Optional
from datetime import datetime
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import uuid
from marketplace.errors import ConflictError, NotFoundError, PermissionDenied
from marketplace.models_sqlalchemy.models import User, UserRole
from marketplace.services.tenancy import Action, Actor, Resource, authorize
from marketplace.utils.logger import logger


class UserService:

    def __init__(self, db: Session):
        self.db = db

    def create_user(
        self,
        email: str,
        role: UserRole = UserRole.buyer,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        is_email_verified: bool = False,
        is_deletable: bool = True,
        created_by: Optional[str] = None,
        commit: bool = True,
    ) -> User:
        email = email.strip().lower()
        if self.get_user_by_email(email):
            logger.warning(f"User creation failed: Email already exists - {email}")
            raise ConflictError("User already exists")

        user = User(
            id=str(uuid.uuid4()),
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
            is_email_verified=is_email_verified,
            is_deletable=is_deletable,
            created_by=created_by,
            created_at=datetime.utcnow(),
        )
        self.db.add(user)
        try:
            if commit:
                self.db.commit()
                self.db.refresh(user)
            else:
                self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("User already exists")
        logger.info(f"Created user: {user.email} with role: {user.role.value}")
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.created_at.asc()).all()

    def record_login(self, user: User) -> User:
        user.last_login_at = datetime.utcnow()
        if not user.is_email_verified:
            user.is_email_verified = True
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_role(self, actor: Actor, user_id: str, role: UserRole) -> User:
        decision = authorize(actor, Action.change_role)
        if not decision:
            raise PermissionDenied(decision.reason)

        user = self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        previous = user.role
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Role of {user.email} changed {previous.value} -> {role.value} by {actor.id}")
        return user

    def delete_user(self, actor: Actor, user_id: str) -> None:
        # Role and self checks first so a missing id never leaks to non-super admins.
        decision = authorize(actor, Action.delete_user, Resource(id=user_id))
        if not decision:
            raise PermissionDenied(decision.reason)

        user = self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found or cannot be deleted")

        decision = authorize(
            actor,
            Action.delete_user,
            Resource(id=user.id, is_deletable=bool(user.is_deletable)),
        )
        if not decision:
            raise PermissionDenied(decision.reason)

        self.db.delete(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Delete of {user_id} blocked by dependent rows")
            raise ConflictError("User still owns a store or orders and cannot be deleted")
        logger.info(f"Deleted user {user_id} by {actor.id}")
