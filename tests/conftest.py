"""Shared fixtures: in-memory database, API client and small data factories."""

from __future__ import annotations

import os

# Antes de importar la app: BD en memoria, sin fichero
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.deps import get_db
from app.core.security import create_access_token, hash_password
from app.core.time import utcnow
from app.db.models import _all  # noqa: F401
from app.db.models.championship import Championship
from app.db.models.championship_member import ChampionshipMember
from app.db.models.driver import Driver
from app.db.models.prediction import Prediction
from app.db.models.race import Race
from app.db.models.race_result import RaceResult
from app.db.models.season import Season
from app.db.models.team import Team
from app.db.models.user import User
from app.db.session import Base
from app.services.scoring_rules import DEFAULT_SCORING, store_scoring_rules


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ── Factories ────────────────────────────────────────────────────────────────


def make_user(db, name: str = "user", role: str = "user") -> User:
    user = User(
        email=f"{name.lower()}@test.com",
        name=name,
        hashed_password=hash_password("secret123"),
        role=role,
    )
    db.add(user)
    db.commit()
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def make_season(db, year: int = 2026) -> Season:
    season = Season(year=year, name=f"F1 {year}", is_active=True)
    db.add(season)
    db.commit()
    return season


def make_drivers(db, season: Season, count: int = 10) -> list[Driver]:
    team = Team(name="Equipo", season_id=season.id)
    db.add(team)
    db.flush()
    drivers = [
        Driver(name=f"Piloto {i}", short_code=f"P{i:02d}", number=i, team_id=team.id)
        for i in range(1, count + 1)
    ]
    db.add_all(drivers)
    db.commit()
    return drivers


def make_race(db, season: Season, round_number: int = 1, locked: bool = True) -> Race:
    """locked=True: la clasificación ya pasó (no se puede predecir)."""
    qualy = utcnow() + (timedelta(days=-1) if locked else timedelta(days=3))
    race = Race(
        season_id=season.id,
        name=f"GP {round_number}",
        round_number=round_number,
        qualy_date=qualy,
        race_date=qualy + timedelta(days=1),
    )
    db.add(race)
    db.commit()
    return race


def set_results(db, race: Race, podium, pole=None, fastest_lap=None, last_place=None) -> None:
    """podium: ids de piloto para P1..Pn (n <= 6)."""
    rows: dict[int, RaceResult] = {}

    def row(driver_id):
        if driver_id not in rows:
            rows[driver_id] = RaceResult(race_id=race.id, driver_id=driver_id)
        return rows[driver_id]

    for position, driver_id in enumerate(podium, start=1):
        row(driver_id).position = position
    if pole is not None:
        row(pole).is_pole = True
    if fastest_lap is not None:
        row(fastest_lap).fastest_lap = True
    if last_place is not None:
        row(last_place).is_last_place = True

    db.query(RaceResult).filter(RaceResult.race_id == race.id).delete()
    db.add_all(rows.values())
    db.commit()


def make_championship(db, season: Season, admin: User, members=()) -> Championship:
    championship = Championship(
        name="Liga",
        invitation_code=f"ABC-{admin.id:03d}",
        season_id=season.id,
        admin_id=admin.id,
    )
    db.add(championship)
    db.flush()
    for user in (admin, *members):
        db.add(ChampionshipMember(championship_id=championship.id, user_id=user.id))
    store_scoring_rules(db, championship.id, DEFAULT_SCORING)
    db.commit()
    return championship


def predict(db, championship, race, user, positions=(), pole=None, fastest_lap=None, last_place=None) -> Prediction:
    fields = {f"position_{i}": driver_id for i, driver_id in enumerate(positions, start=1)}
    prediction = Prediction(
        championship_id=championship.id,
        race_id=race.id,
        user_id=user.id,
        pole=pole,
        fastest_lap=fastest_lap,
        last_place=last_place,
        **fields,
    )
    db.add(prediction)
    db.commit()
    return prediction


def member(db, championship, user) -> ChampionshipMember:
    return (
        db.query(ChampionshipMember)
        .filter(
            ChampionshipMember.championship_id == championship.id,
            ChampionshipMember.user_id == user.id,
        )
        .one()
    )
