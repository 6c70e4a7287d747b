"""User service - pricing tier assignment."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from dealerdesk.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError, ValidationError
from dealerdesk.models import AppUser, Role

logger = logging.getLogger(__name__)


def parse_role_value(value) -> Role:
    """Strict role parsing for assignment; unknown values are rejected."""
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        allowed = ', '.join(role.value for role in Role)
        raise ValidationError(f'role must be one of: {allowed}')


def assign_role(session: Session, user_id: int, role, acting_user: Optional[AppUser] = None) -> AppUser:
    """
    Assign or change a user's tier.

    Args:
        acting_user: the admin making the change; None for operator tooling (CLI)

    Raises:
        UnauthorizedError: acting user is not an admin
        BusinessLogicError: acting user tries to change their own role
        NotFoundError, ValidationError
    """
    if acting_user is not None:
        if not acting_user.is_admin():
            raise UnauthorizedError('Only admins can change roles')
        if acting_user.id == user_id:
            raise BusinessLogicError('You cannot change your own role')

    new_role = parse_role_value(role)

    user = session.get(AppUser, user_id)
    if not user:
        raise NotFoundError(f'User {user_id} not found.')

    previous = user.role
    try:
        user.role = new_role.value
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"User {user.email} role changed from {previous or '-'} to {new_role.value}")
    return user
