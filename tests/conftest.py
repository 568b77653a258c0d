"""Pytest fixtures: a throwaway SQLite file database per test."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RABBITMQ_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from shop_service import db
from shop_service.auth import authenticate, verify_token
from shop_service.main import app


@pytest.fixture
def engine(tmp_path, monkeypatch):
    eng = db.make_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    db.init_db(eng)
    monkeypatch.setattr(db, "engine", eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def client(engine):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def signup(session):
    """Log a new user in and return their account id."""
    def _signup(username: str, password: str = "secret") -> int:
        return verify_token(authenticate(session, username, password)).account_id
    return _signup
