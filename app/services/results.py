import logging

from sqlalchemy.orm import Session

from app.db.models.driver import Driver
from app.db.models.race import Race
from app.db.models.race_result import RaceResult
from app.schemas.race_result import RaceResultInput
from app.services.errors import RaceLockedError
from app.services.recalculation import race_lock_keys, reading, unit_of_work

logger = logging.getLogger(__name__)


def replace_race_results(db: Session, race: Race, result: RaceResultInput):
    """
    Sustituye el resultado oficial de una carrera pendiente (con commit).
    Con la carrera confirmada no se toca: hay que desconfirmar antes.
    Se hace con las claves de la carrera tomadas, igual que la confirmación.
    """
    with reading(db):
        keys = race_lock_keys(db, race)

    with unit_of_work(db, keys):
        db.refresh(race)
        if race.is_result_confirmed:
            raise RaceLockedError()

        driver_ids = {e.driver_id for e in result.entries}
        known = {
            d_id for (d_id,) in db.query(Driver.id).filter(Driver.id.in_(driver_ids))
        }
        unknown = driver_ids - known
        if unknown:
            raise LookupError(f"Pilotos desconocidos: {sorted(unknown)}")

        # 🔄 Borramos el resultado anterior
        db.query(RaceResult).filter(RaceResult.race_id == race.id).delete()

        for entry in result.entries:
            db.add(RaceResult(race_id=race.id, **entry.model_dump()))

    logger.info("Resultado de la carrera %s guardado (%d filas)", race.id, len(result.entries))

    return get_race_results(db, race.id)


def get_race_results(db: Session, race_id: int):
    return (
        db.query(RaceResult)
        .filter(RaceResult.race_id == race_id)
        .order_by(RaceResult.position.is_(None), RaceResult.position, RaceResult.driver_id)
        .all()
    )
