"""Shared fixtures for the searchplus test suite."""

from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy import text

from searchplus import db


@pytest.fixture
def people():
    return [
        {"id": 1, "Nom": "Alice Dupont", "Email": "alice@corp.fr", "Ville": "Paris"},
        {"id": 2, "Nom": "Bob Martin", "Email": "bob@corp.fr", "Ville": "Lyon"},
        {"id": 3, "Nom": "Claire Morin", "Email": "claire@corp.fr", "Ville": "Nantes"},
    ]


def local_midnight_epoch(day: date) -> float:
    """Unix seconds of local midnight on ``day``."""
    return datetime.combine(day, time()).timestamp()


@pytest.fixture
def today_epoch():
    return local_midnight_epoch(date.today())


@pytest.fixture
def yesterday_epoch():
    return local_midnight_epoch(date.today() - timedelta(days=1))


@pytest.fixture
def sqlite_url(tmp_path, monkeypatch):
    """Point DATABASE_URL at a throwaway SQLite file and reset the engine around the test."""
    url = f"sqlite:///{tmp_path / 'records.sqlite3'}"
    monkeypatch.setenv("DATABASE_URL", url)
    db.dispose_engine()
    yield url
    db.dispose_engine()


@pytest.fixture
def seeded_engine(sqlite_url):
    engine = db.get_engine()
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE employees (id INTEGER PRIMARY KEY, Nom TEXT, Ville TEXT, Salaire REAL, Embauche TEXT)"
        ))
        conn.execute(text("CREATE TABLE _grist_Tables (id INTEGER PRIMARY KEY, tableId TEXT)"))
        conn.execute(text("CREATE TABLE GristHidden_import (id INTEGER PRIMARY KEY)"))
        conn.execute(
            text("INSERT INTO employees (id, Nom, Ville, Salaire, Embauche) VALUES (:id, :nom, :ville, :sal, :emb)"),
            [
                {"id": 2, "nom": "Bob Martin", "ville": "Lyon", "sal": 3100.0, "emb": "2021-09-01"},
                {"id": 1, "nom": "Alice Dupont", "ville": "Paris", "sal": 4200.5, "emb": "2019-03-15"},
                {"id": 3, "nom": "Claire Morin", "ville": "Nantes", "sal": None, "emb": None},
            ],
        )
    return engine
