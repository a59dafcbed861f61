import logging
import random
from datetime import timedelta

from app.core.logging import setup_logging
from app.core.security import hash_password
from app.core.time import utcnow
from app.db.session import SessionLocal, engine, Base
from app.db.models import _all
from app.db.models.user import User
from app.db.models.season import Season
from app.db.models.team import Team
from app.db.models.driver import Driver
from app.db.models.race import Race
from app.db.models.race_result import RaceResult
from app.db.models.championship import Championship
from app.db.models.championship_member import ChampionshipMember
from app.db.models.prediction import Prediction
from app.services.recalculation import confirm_race
from app.services.scoring_rules import DEFAULT_SCORING, store_scoring_rules

logger = logging.getLogger("app.scripts.seed_data")

# Configuración
NUM_USERS = 12
PAST_RACES = 5

GRID = [
    ("Red Bull Racing", "#1e41ff", [("VER", "Max Verstappen", 1, "NED"), ("LAW", "Liam Lawson", 30, "NZL")]),
    ("Ferrari", "#ff0000", [("HAM", "Lewis Hamilton", 44, "GBR"), ("LEC", "Charles Leclerc", 16, "MON")]),
    ("McLaren", "#ff8700", [("NOR", "Lando Norris", 4, "GBR"), ("PIA", "Oscar Piastri", 81, "AUS")]),
    ("Mercedes", "#00d2be", [("RUS", "George Russell", 63, "GBR"), ("ANT", "Kimi Antonelli", 12, "ITA")]),
    ("Aston Martin", "#006f62", [("ALO", "Fernando Alonso", 14, "ESP"), ("STR", "Lance Stroll", 18, "CAN")]),
    ("Williams", "#005aff", [("SAI", "Carlos Sainz", 55, "ESP"), ("ALB", "Alex Albon", 23, "THA")]),
    ("Alpine", "#ff00ff", [("GAS", "Pierre Gasly", 10, "FRA"), ("COL", "Franco Colapinto", 43, "ARG")]),
    ("Haas", "#b6babd", [("OCO", "Esteban Ocon", 31, "FRA"), ("BEA", "Ollie Bearman", 87, "GBR")]),
]


def reset_db():
    logger.info("Borrando base de datos antigua...")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def create_season(db):
    season = Season(year=2026, name="F1 2026 Simulación", is_active=True)
    db.add(season)
    db.commit()
    return season


def create_f1_grid(db, season):
    logger.info("Creando parrilla F1 (escuderías y pilotos)...")
    driver_ids = []

    for team_name, color, drivers in GRID:
        team = Team(name=team_name, color=color, season_id=season.id)
        db.add(team)
        db.flush()

        for code, name, number, country in drivers:
            driver = Driver(short_code=code, name=name, number=number, country=country, team_id=team.id)
            db.add(driver)
            db.flush()
            driver_ids.append(driver.id)

    db.commit()
    return driver_ids


def create_users_and_championship(db, season):
    admin = User(email="admin@test.com", name="ADMIN", hashed_password=hash_password("123456"), role="admin")
    users = [admin]
    for i in range(NUM_USERS - 1):
        users.append(User(
            email=f"bot{i}@test.com",
            name=f"Jugador_{i + 1}",
            hashed_password=hash_password("123456"),
        ))
    db.add_all(users)
    db.flush()

    championship = Championship(
        name="Liga de prueba",
        invitation_code="PRU-EBA",
        season_id=season.id,
        admin_id=admin.id,
    )
    db.add(championship)
    db.flush()

    for user in users:
        db.add(ChampionshipMember(championship_id=championship.id, user_id=user.id))
    store_scoring_rules(db, championship.id, DEFAULT_SCORING)

    db.commit()
    return users, championship


def simulate_race(db, season, championship, users, round_number, driver_ids):
    race_date = utcnow() - timedelta(days=(PAST_RACES - round_number + 1) * 7)
    race = Race(
        season_id=season.id,
        name=f"GP Simulado {round_number}",
        round_number=round_number,
        race_date=race_date,
        qualy_date=race_date - timedelta(days=1),
    )
    db.add(race)
    db.flush()
    logger.info("Simulando %s...", race.name)

    # Resultado REAL
    order = random.sample(driver_ids, len(driver_ids))
    pole = random.choice(order[:4])
    fastest = random.choice(order[:10])
    rows = {d: RaceResult(race_id=race.id, driver_id=d) for d in {*order[:6], pole, fastest, order[-1]}}
    for i, driver_id in enumerate(order[:6]):
        rows[driver_id].position = i + 1
    rows[pole].is_pole = True
    rows[fastest].fastest_lap = True
    rows[order[-1]].is_last_place = True
    db.add_all(rows.values())

    # Predicciones (algún jugador se queda sin predecir)
    for user in users:
        if random.random() < 0.15:
            continue
        picks = random.sample(driver_ids, 6)
        if random.random() > 0.6:
            picks[0] = order[0]
        db.add(Prediction(
            championship_id=championship.id,
            race_id=race.id,
            user_id=user.id,
            position_1=picks[0], position_2=picks[1], position_3=picks[2],
            position_4=picks[3], position_5=picks[4], position_6=picks[5],
            pole=random.choice(driver_ids),
            fastest_lap=random.choice(driver_ids),
            last_place=random.choice(driver_ids),
        ))

    db.commit()
    confirm_race(db, race.id)


def main():
    db = SessionLocal()
    try:
        reset_db()
        season = create_season(db)
        driver_ids = create_f1_grid(db, season)
        users, championship = create_users_and_championship(db, season)

        for round_number in range(1, PAST_RACES + 1):
            simulate_race(db, season, championship, users, round_number, driver_ids)

        future = utcnow() + timedelta(days=7)
        for offset, round_number in enumerate(range(PAST_RACES + 1, PAST_RACES + 3)):
            race_date = future + timedelta(days=7 * offset)
            db.add(Race(
                season_id=season.id,
                name=f"GP Futuro {offset + 1}",
                round_number=round_number,
                race_date=race_date,
                qualy_date=race_date - timedelta(days=1),
            ))
        db.commit()

        logger.info("¡Simulación completada con éxito! Código de invitación: %s", championship.invitation_code)
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    main()
