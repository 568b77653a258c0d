import logging
from typing import List

from fastapi import FastAPI, Depends, BackgroundTasks, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictInt, StrictStr
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import auth, events, ledger
from .config import configure_logging, SERVER_HOST, SERVER_PORT
from .db import init_db, get_session
from .errors import ShopError, LedgerInconsistency

logger = logging.getLogger(__name__)

app = FastAPI(title="shop-service")


class AuthIn(BaseModel):
    username: str
    password: str


class TokenOut(BaseModel):
    token: str


class SendCoinIn(BaseModel):
    toUser: StrictStr = Field(min_length=1)
    amount: StrictInt = Field(gt=0)


class InventoryOut(BaseModel):
    type: str
    quantity: int


class ReceivedOut(BaseModel):
    fromUser: str
    amount: int


class SentOut(BaseModel):
    toUser: str
    amount: int


class CoinHistoryOut(BaseModel):
    received: List[ReceivedOut] = []
    sent: List[SentOut] = []


class InfoOut(BaseModel):
    coins: int
    inventory: List[InventoryOut] = []
    coinHistory: CoinHistoryOut


class StatusOut(BaseModel):
    status: str = "ok"


@app.on_event("startup")
async def on_start():
    configure_logging()
    init_db()
    await events.start()


@app.on_event("shutdown")
async def on_shutdown():
    await events.stop()


@app.exception_handler(ShopError)
async def shop_error(request: Request, exc: ShopError):
    if isinstance(exc, LedgerInconsistency):
        await events.publish("transfer.inconsistent", exc.details)
    return JSONResponse(status_code=exc.status_code, content={"errors": exc.message})


@app.exception_handler(RequestValidationError)
async def bad_request(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"errors": "Invalid request"})


@app.exception_handler(SQLAlchemyError)
async def storage_error(request: Request, exc: SQLAlchemyError):
    logger.exception("storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"errors": "Internal error"})


@app.get("/")
def index():
    return {"message": "Welcome to the shop API"}


@app.post("/api/auth", response_model=TokenOut)
def login(body: AuthIn, session: Session = Depends(get_session)):
    return TokenOut(token=auth.authenticate(session, body.username, body.password))


@app.get("/api/info", response_model=InfoOut)
def info(user: auth.Identity = Depends(auth.get_current_account), session: Session = Depends(get_session)):
    view = ledger.get_info(session, user.account_id)
    return InfoOut(
        coins=view.balance,
        inventory=[InventoryOut(type=i.item, quantity=i.quantity) for i in view.inventory],
        coinHistory=CoinHistoryOut(
            received=[ReceivedOut(fromUser=h.counterparty, amount=h.amount) for h in view.received],
            sent=[SentOut(toUser=h.counterparty, amount=h.amount) for h in view.sent],
        ),
    )


@app.post("/api/sendCoin", response_model=StatusOut)
def send_coin(
    body: SendCoinIn,
    background: BackgroundTasks,
    user: auth.Identity = Depends(auth.get_current_account),
    session: Session = Depends(get_session),
):
    record = ledger.transfer(session, user.account_id, body.toUser, body.amount)
    background.add_task(events.publish, "transfer.completed", {
        "id": record.id,
        "from_account_id": record.from_account_id,
        "to_account_id": record.to_account_id,
        "amount": record.amount,
    })
    return StatusOut()


@app.get("/api/buy/{item}", response_model=StatusOut)
def buy(
    item: str,
    background: BackgroundTasks,
    user: auth.Identity = Depends(auth.get_current_account),
    session: Session = Depends(get_session),
):
    entry = ledger.purchase(session, user.account_id, item)
    background.add_task(events.publish, "purchase.completed", {
        "account_id": user.account_id,
        "item": item,
        "quantity": entry.quantity,
    })
    return StatusOut()


def run():
    import uvicorn
    uvicorn.run("shop_service.main:app", host=SERVER_HOST, port=SERVER_PORT)
