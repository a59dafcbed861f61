"""
Único camino que escribe race_points y los campos de clasificación.

Cada disparador (confirmar carrera, recalcular, cambiar la tabla de puntos,
banear/desbanear, altas y bajas de miembros) es una sola transacción: o se
guarda todo o no se guarda nada. Los recálculos sobre la misma pareja
(campeonato, carrera) se serializan con un lock por clave dentro del proceso.
"""
import logging
import threading
import time
import weakref
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import RECALC_LOCK_TIMEOUT
from app.db.models.championship import Championship
from app.db.models.championship_member import ChampionshipMember
from app.db.models.prediction import Prediction
from app.db.models.race import Race
from app.db.models.race_point import RacePoint
from app.db.models.race_result import RaceResult
from app.services.errors import (
    RaceNotConfirmedError,
    RaceResultMissingError,
    RecalculationConflictError,
    UpstreamUnavailableError,
)
from app.services.scoring import build_result_map, upsert_race_point
from app.services.scoring_rules import get_scoring_rules, store_scoring_rules, validate_scoring
from app.services.standings import aggregate_standings

logger = logging.getLogger(__name__)

# Clave reservada para la clasificación del campeonato (los ids de carrera empiezan en 1)
STANDINGS_KEY = 0


class RecalculationLocks:
    """
    Registro de locks por (championship_id, race_id).
    Un lock vive mientras alguien lo tiene o lo espera; después desaparece.
    """

    def __init__(self, timeout: float = RECALC_LOCK_TIMEOUT):
        self.timeout = timeout
        self._locks = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, key):
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def is_locked(self, key) -> bool:
        with self._registry_lock:
            lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self):
        return len(self._locks)

    @contextmanager
    def hold(self, keys):
        """
        Adquiere todas las claves en orden (sin interbloqueos) o ninguna.
        Si alguna no se libera a tiempo lanza RecalculationConflictError.
        """
        ordered = sorted(set(keys))
        acquired = []
        deadline = time.monotonic() + self.timeout
        try:
            for key in ordered:
                lock = self._lock_for(key)
                remaining = max(0.0, deadline - time.monotonic())
                if not lock.acquire(timeout=remaining):
                    logger.warning("Recálculo rechazado: clave %s ocupada", key)
                    raise RecalculationConflictError()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


recalculation_locks = RecalculationLocks()


@contextmanager
def reading(db: Session):
    """Lecturas previas al lock: si la BD falla, nada se ha escrito todavía."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("No se pudieron leer los datos del recálculo: %s", exc)
        raise UpstreamUnavailableError() from exc


@contextmanager
def unit_of_work(db: Session, keys):
    """Lock + transacción: commit al final, rollback completo si algo falla."""
    with recalculation_locks.hold(keys):
        try:
            yield
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Recálculo abortado, sin cambios guardados: %s", exc)
            raise UpstreamUnavailableError() from exc
        except Exception:
            db.rollback()
            raise


@contextmanager
def championship_work(db: Session, championship: Championship):
    """
    Transacción sobre todas las carreras confirmadas de un campeonato.

    Primero se toma la clave de la clasificación (toda confirmación la toma
    también) y solo entonces se leen las carreras confirmadas y se bloquean
    sus claves, así ninguna confirmación se cuela entre la lectura y el lock.
    """
    with unit_of_work(db, [(championship.id, STANDINGS_KEY)]):
        races = confirmed_races(db, championship.season_id)
        with recalculation_locks.hold([(championship.id, race.id) for race in races]):
            yield races


# -----------------------
# Lecturas
# -----------------------
def load_race_results(db: Session, race_id: int):
    return db.query(RaceResult).filter(RaceResult.race_id == race_id).all()


def load_members(db: Session, championship_id: int):
    return (
        db.query(ChampionshipMember)
        .filter(ChampionshipMember.championship_id == championship_id)
        .all()
    )


def season_championships(db: Session, season_id: int):
    return (
        db.query(Championship)
        .filter(Championship.season_id == season_id)
        .order_by(Championship.id)
        .all()
    )


def confirmed_races(db: Session, season_id: int):
    return (
        db.query(Race)
        .filter(Race.season_id == season_id, Race.is_result_confirmed.is_(True))
        .order_by(Race.round_number)
        .all()
    )


def _race_keys(championships, race):
    keys = []
    for championship in championships:
        keys.append((championship.id, race.id))
        keys.append((championship.id, STANDINGS_KEY))
    return keys


def race_lock_keys(db: Session, race: Race):
    """Las mismas claves que toma la confirmación de la carrera."""
    return _race_keys(season_championships(db, race.season_id), race)


def _get_race(db: Session, race_id: int) -> Race:
    race = db.get(Race, race_id)
    if not race:
        raise LookupError(f"Carrera {race_id} no encontrada")
    return race


# -----------------------
# Cálculo
# -----------------------
def recompute_race_points(db: Session, championship: Championship, race: Race, result_map, rules=None):
    """
    Una fila de puntos por miembro (baneados incluidos, para poder
    desbanearlos sin perder nada). Las filas de quien ya no es miembro se borran.
    """
    if rules is None:
        rules = get_scoring_rules(db, championship.id)

    members = load_members(db, championship.id)
    predictions = {
        p.user_id: p
        for p in db.query(Prediction).filter(
            Prediction.championship_id == championship.id,
            Prediction.race_id == race.id,
        )
    }

    member_ids = [m.user_id for m in members]
    for user_id in member_ids:
        upsert_race_point(
            db,
            championship.id,
            race.id,
            user_id,
            predictions.get(user_id),
            result_map,
            rules,
        )

    stale = db.query(RacePoint).filter(
        RacePoint.championship_id == championship.id,
        RacePoint.race_id == race.id,
    )
    if member_ids:
        stale = stale.filter(RacePoint.user_id.notin_(member_ids))
    stale.delete(synchronize_session=False)

    db.flush()
    logger.info(
        "Puntos de la carrera %s en el campeonato %s: %d filas (%d con predicción)",
        race.id, championship.id, len(member_ids),
        sum(1 for uid in member_ids if uid in predictions),
    )


def _recompute_race(db: Session, race: Race, championships):
    race_results = load_race_results(db, race.id)
    if not race_results:
        raise RaceResultMissingError()

    result_map = build_result_map(race_results)
    for championship in championships:
        recompute_race_points(db, championship, race, result_map)
        aggregate_standings(db, championship)


def _recompute_championship(db: Session, championship: Championship, races, rules=None):
    """Todas las carreras confirmadas del campeonato y una sola agregación."""
    if rules is None:
        rules = get_scoring_rules(db, championship.id)

    for race in races:
        result_map = build_result_map(load_race_results(db, race.id))
        recompute_race_points(db, championship, race, result_map, rules)
    aggregate_standings(db, championship)


# -----------------------
# Disparadores
# -----------------------
def confirm_race(db: Session, race_id: int) -> Race:
    """
    pending -> confirmed, o confirmed -> confirmed (corrección).
    Sobrescribe los puntos de la carrera en todos los campeonatos de la temporada.
    """
    with reading(db):
        race = _get_race(db, race_id)
        championships = season_championships(db, race.season_id)

    logger.info("Confirmando carrera %s (%d campeonatos)", race.id, len(championships))
    with unit_of_work(db, _race_keys(championships, race)):
        race.is_result_confirmed = True
        db.flush()
        _recompute_race(db, race, championships)

    return race


def recalculate_race(db: Session, race_id: int) -> Race:
    """
    Repite el cálculo sin tocar el estado de confirmación.
    La confirmación se comprueba ya con el lock tomado.
    """
    with reading(db):
        race = _get_race(db, race_id)
        championships = season_championships(db, race.season_id)

    logger.info("Recalculando carrera %s", race.id)
    with unit_of_work(db, _race_keys(championships, race)):
        db.refresh(race)
        if not race.is_result_confirmed:
            raise RaceNotConfirmedError()
        _recompute_race(db, race, championships)

    return race


def unconfirm_race(db: Session, race_id: int) -> Race:
    """
    confirmed -> pending, para poder corregir el resultado.
    La clasificación deja de contar la carrera hasta que se vuelva a confirmar.
    """
    with reading(db):
        race = _get_race(db, race_id)
        championships = season_championships(db, race.season_id)

    logger.info("Desconfirmando carrera %s", race.id)
    with unit_of_work(db, _race_keys(championships, race)):
        race.is_result_confirmed = False
        db.flush()
        for championship in championships:
            aggregate_standings(db, championship)

    return race


def update_scoring(db: Session, championship: Championship, payload):
    """
    Valida y guarda la nueva tabla y recalcula TODAS las carreras confirmadas
    de la temporada con ella; la clasificación se agrega una sola vez.
    Si la tabla no es válida no se toca nada.
    """
    rules = validate_scoring(payload)

    with championship_work(db, championship) as races:
        logger.info(
            "Nueva tabla de puntos para el campeonato %s, recalculando %d carreras",
            championship.id, len(races),
        )
        store_scoring_rules(db, championship.id, rules)
        _recompute_championship(db, championship, races, rules)

    return rules


def set_member_ban(db: Session, championship: Championship, user_id: int, banned: bool):
    """Banear/desbanear solo cambia la visibilidad; sus puntos se conservan."""
    with reading(db):
        member = (
            db.query(ChampionshipMember)
            .filter(
                ChampionshipMember.championship_id == championship.id,
                ChampionshipMember.user_id == user_id,
            )
            .first()
        )
    if not member:
        raise LookupError("El usuario no es miembro de este campeonato")

    with unit_of_work(db, [(championship.id, STANDINGS_KEY)]):
        member.is_banned = banned
        db.flush()
        aggregate_standings(db, championship)

    return member


def refresh_standings(db: Session, championship: Championship):
    """
    Altas y bajas de miembros: rehace los puntos de todas las carreras
    confirmadas (filas nuevas para quien entra, fuera las de quien se va)
    y reagrega la clasificación.
    """
    with championship_work(db, championship) as races:
        logger.info(
            "Miembros del campeonato %s cambiados, recalculando %d carreras",
            championship.id, len(races),
        )
        _recompute_championship(db, championship, races)
