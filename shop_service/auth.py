import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .config import JWT_SECRET, ALGO, ACCESS_MIN, BCRYPT_ROUNDS, SIGNUP_BONUS
from .errors import InvalidCredentials, InvalidInput, Unauthorized
from .models import Account

logger = logging.getLogger(__name__)

pwd = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


@dataclass(frozen=True)
class Identity:
    account_id: int
    username: str


def create_token(account_id: int, username: str, ttl: Optional[timedelta] = None) -> str:
    exp = datetime.now(timezone.utc) + (ttl if ttl is not None else timedelta(minutes=ACCESS_MIN))
    claims = {"sub": str(account_id), "username": username, "exp": exp}
    return jwt.encode(claims, JWT_SECRET, algorithm=ALGO)


def verify_token(token: str) -> Identity:
    """Map a session token to the caller identity, or raise Unauthorized.

    The signature and the ``exp`` claim are checked by jose; a token without
    an expiry is refused as well.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGO], options={"require_exp": True})
        return Identity(account_id=int(payload["sub"]), username=payload["username"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid token")


def authenticate(session: Session, username: str, password: str) -> str:
    if not username or not password:
        raise InvalidInput("username and password are required")

    account = session.exec(select(Account).where(Account.username == username)).first()
    if account is None:
        account = _provision(session, username, password)
    elif not pwd.verify(password, account.password_hash):
        logger.warning("rejected login for %s", username)
        raise InvalidCredentials()

    return create_token(account.id, account.username)


def _provision(session: Session, username: str, password: str) -> Account:
    account = Account(username=username, password_hash=pwd.hash(password), balance=SIGNUP_BONUS)
    session.add(account)
    try:
        session.commit()
    except IntegrityError:
        # a concurrent first login won the insert; treat this one as a regular login
        session.rollback()
        account = session.exec(select(Account).where(Account.username == username)).one()
        if not pwd.verify(password, account.password_hash):
            logger.warning("rejected login for %s", username)
            raise InvalidCredentials()
        return account
    session.refresh(account)
    logger.info("provisioned account %s (id=%s)", username, account.id)
    return account


def get_current_account(auth: Optional[str] = Header(default=None, alias="Authorization")) -> Identity:
    if not auth or not auth.lower().startswith("bearer "):
        raise Unauthorized("Missing token")
    return verify_token(auth.split(" ", 1)[1].strip())
