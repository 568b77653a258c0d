"""Coin ledger: every balance mutation in the shop goes through this module.

Balances change only via ``_apply``, a single conditional UPDATE that adds
``delta`` when the result stays non-negative. The row lock taken by that
statement serializes concurrent adjustments of one account, so a
read-check-write on the balance can never interleave with another.
Operations touching two accounts update them in ascending id order inside one
transaction.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import update
from sqlmodel import Session, select

from .catalog import price_of
from .errors import InsufficientFunds, InvalidInput, LedgerInconsistency, NotFound, UnknownItem
from .models import Account, InventoryEntry, TransferRecord

logger = logging.getLogger(__name__)


@dataclass
class InventoryItem:
    item: str
    quantity: int


@dataclass
class HistoryEntry:
    counterparty_id: int
    counterparty: str
    amount: int


@dataclass
class Info:
    balance: int
    inventory: List[InventoryItem] = field(default_factory=list)
    received: List[HistoryEntry] = field(default_factory=list)
    sent: List[HistoryEntry] = field(default_factory=list)


def _apply(session: Session, account_id: int, delta: int):
    stmt = (
        update(Account)
        .where(Account.id == account_id, Account.balance + delta >= 0)
        .values(balance=Account.balance + delta)
    )
    conn = session.connection()
    if conn.execute(stmt).rowcount == 1:
        return
    if conn.execute(select(Account.id).where(Account.id == account_id)).first() is None:
        raise NotFound()
    raise InsufficientFunds()


def adjust_balance(session: Session, account_id: int, delta: int):
    try:
        _apply(session, account_id, delta)
        session.commit()
    except Exception:
        session.rollback()
        raise


def _check_amount(amount):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidInput("amount must be a positive integer")


def transfer(session: Session, from_account_id: int, to_username: str, amount: int) -> TransferRecord:
    _check_amount(amount)
    if not to_username:
        raise InvalidInput("toUser is required")

    receiver = session.exec(select(Account).where(Account.username == to_username)).first()
    if receiver is None:
        raise NotFound("Receiver not found")
    to_account_id = receiver.id
    if to_account_id == from_account_id:
        raise InvalidInput("cannot send coins to yourself")

    legs = sorted([(from_account_id, -amount), (to_account_id, amount)])
    applied = []
    try:
        for account_id, delta in legs:
            _apply(session, account_id, delta)
            applied.append(account_id)
        record = TransferRecord(from_account_id=from_account_id, to_account_id=to_account_id, amount=amount)
        session.add(record)
        session.commit()
    except InsufficientFunds:
        session.rollback()
        logger.warning("transfer %s -> %s of %s rejected: insufficient funds", from_account_id, to_account_id, amount)
        raise
    except Exception as exc:
        session.rollback()
        if from_account_id in applied:
            logger.critical(
                "transfer %s -> %s of %s failed after debit, rolled back: %r",
                from_account_id, to_account_id, amount, exc,
            )
            raise LedgerInconsistency(
                from_account_id=from_account_id, to_account_id=to_account_id, amount=amount,
            ) from exc
        raise

    session.refresh(record)
    logger.info("transfer %s -> %s of %s committed (id=%s)", from_account_id, to_account_id, amount, record.id)
    return record


def purchase(session: Session, account_id: int, item: str) -> InventoryEntry:
    price = price_of(item)
    if price is None:
        raise UnknownItem(f"Unknown item: {item}")

    try:
        _apply(session, account_id, -price)
        bumped = session.connection().execute(
            update(InventoryEntry)
            .where(InventoryEntry.account_id == account_id, InventoryEntry.item == item)
            .values(quantity=InventoryEntry.quantity + 1)
        )
        if bumped.rowcount == 0:
            session.add(InventoryEntry(account_id=account_id, item=item))
        session.commit()
    except InsufficientFunds:
        session.rollback()
        logger.warning("purchase of %s by %s rejected: insufficient funds", item, account_id)
        raise
    except Exception:
        session.rollback()
        raise

    logger.info("account %s bought %s for %s", account_id, item, price)
    return session.exec(
        select(InventoryEntry).where(InventoryEntry.account_id == account_id, InventoryEntry.item == item)
    ).one()


def _history(session: Session, mine, theirs, account_id: int) -> List[HistoryEntry]:
    rows = session.exec(
        select(TransferRecord, Account.username)
        .join(Account, Account.id == theirs)
        .where(mine == account_id)
        .order_by(TransferRecord.created_at.desc(), TransferRecord.id.desc())
    ).all()
    return [
        HistoryEntry(counterparty_id=getattr(rec, theirs.key), counterparty=username, amount=rec.amount)
        for rec, username in rows
    ]


def get_info(session: Session, account_id: int) -> Info:
    account = session.get(Account, account_id)
    if account is None:
        raise NotFound()

    entries = session.exec(
        select(InventoryEntry).where(InventoryEntry.account_id == account_id).order_by(InventoryEntry.item)
    ).all()
    return Info(
        balance=account.balance,
        inventory=[InventoryItem(item=e.item, quantity=e.quantity) for e in entries],
        received=_history(session, TransferRecord.to_account_id, TransferRecord.from_account_id, account_id),
        sent=_history(session, TransferRecord.from_account_id, TransferRecord.to_account_id, account_id),
    )
