"""User accounts and roles."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .auth import hash_password, verify_password
from .db import unit_of_work
from .errors import Conflict, InvalidCredentials, InvalidInput, NotFound
from .gate import Action, ProfileTarget, require
from .schemas import ActingIdentity, Role
from .utils import sanitize_input

logger = logging.getLogger(__name__)


def _get(db: Session, login: str) -> models.User:
    user = db.get(models.User, login)
    if user is None:
        raise NotFound(f"user '{login}' not found")
    return user


def identity_of(user: models.User) -> ActingIdentity:
    return ActingIdentity(login=user.login, role=Role.parse(user.type))


def authenticate(db: Session, login: str, password: str) -> ActingIdentity:
    user = db.get(models.User, login)
    if user is None or not verify_password(password, user.password):
        logger.warning("failed login for %s", login)
        raise InvalidCredentials("invalid login or password")
    return identity_of(user)


def register(db: Session, login: str, password: str, phone: Optional[str] = None) -> ActingIdentity:
    login = login.strip()
    if not login or not password:
        raise InvalidInput("login and password are required")
    if db.get(models.User, login) is not None:
        raise Conflict(f"login '{login}' already exists")
    user = models.User(
        login=login,
        password=hash_password(password),
        phone_num=phone,
        fav_items="",
        type=Role.CUSTOMER.value,
    )
    with unit_of_work(db):
        db.add(user)
        try:
            db.flush()
        except IntegrityError as e:
            raise Conflict(f"login '{login}' already exists") from e
    logger.info("registered %s", login)
    return identity_of(user)


def get_user(db: Session, acting: ActingIdentity, login: str) -> models.User:
    require(acting, Action.PROFILE_READ, ProfileTarget(login))
    return _get(db, login)


def get_role(db: Session, login: str) -> Role:
    return Role.parse(_get(db, login).type)


# _apply_* helpers check and stage one change; they do not commit.

def _apply_role(db: Session, acting: ActingIdentity, login: str, role) -> bool:
    require(acting, Action.ROLE_WRITE, ProfileTarget(login))
    try:
        role = Role(role)
    except ValueError as e:
        raise InvalidInput(f"unknown role '{role}'") from e
    user = _get(db, login)
    if Role.parse(user.type) is role:
        return False
    user.type = role.value
    logger.info("%s set role of %s to %s", acting.login, login, role.value)
    return True


def _apply_password(
    db: Session, acting: ActingIdentity, login: str, new_password: str, old_password: Optional[str] = None
) -> bool:
    require(acting, Action.PROFILE_EDIT, ProfileTarget(login))
    if not new_password:
        raise InvalidInput("password must not be empty")
    user = _get(db, login)
    if acting.role is not Role.MANAGER:
        if old_password is None or not verify_password(old_password, user.password):
            raise InvalidCredentials("incorrect password")
    if verify_password(new_password, user.password):
        return False
    user.password = hash_password(new_password)
    return True


def _apply_profile_field(db: Session, acting: ActingIdentity, login: str, field: str, value: str) -> bool:
    require(acting, Action.PROFILE_EDIT, ProfileTarget(login))
    user = _get(db, login)
    if getattr(user, field) == value:
        return False
    setattr(user, field, value)
    return True


def set_role(db: Session, acting: ActingIdentity, login: str, role) -> bool:
    with unit_of_work(db):
        return _apply_role(db, acting, login, role)


def set_password(
    db: Session, acting: ActingIdentity, login: str, new_password: str, old_password: Optional[str] = None
) -> bool:
    """Change a password. Non-managers changing their own must confirm the current one."""
    with unit_of_work(db):
        return _apply_password(db, acting, login, new_password, old_password)


def set_phone(db: Session, acting: ActingIdentity, login: str, phone: str) -> bool:
    with unit_of_work(db):
        return _apply_profile_field(db, acting, login, "phone_num", phone.strip())


def set_fav_items(db: Session, acting: ActingIdentity, login: str, fav_items: str) -> bool:
    with unit_of_work(db):
        return _apply_profile_field(db, acting, login, "fav_items", sanitize_input(fav_items))


def update_profile(
    db: Session,
    acting: ActingIdentity,
    login: str,
    password: Optional[str] = None,
    old_password: Optional[str] = None,
    phone: Optional[str] = None,
    fav_items: Optional[str] = None,
    role=None,
) -> bool:
    """Apply several profile changes as one unit.

    If any change is rejected none of them are kept. Returns True when
    anything was written.
    """
    changed = False
    with unit_of_work(db):
        if password is not None:
            changed |= _apply_password(db, acting, login, password, old_password)
        if phone is not None:
            changed |= _apply_profile_field(db, acting, login, "phone_num", phone.strip())
        if fav_items is not None:
            changed |= _apply_profile_field(db, acting, login, "fav_items", sanitize_input(fav_items))
        if role is not None:
            changed |= _apply_role(db, acting, login, role)
    return changed
