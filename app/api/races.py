from fastapi import APIRouter, HTTPException, Depends
from pydantic import ValidationError
from sqlalchemy.orm import Session
from app.db.models.race import Race
from app.schemas.season import RaceOut
from app.schemas.race_result import RaceResultEntry, RaceResultInput
from app.services import recalculation
from app.services.errors import ScoringServiceError
from app.services.f1_sync import sync_race_result
from app.services.results import get_race_results, replace_race_results
from app.api.http_errors import to_http
from app.core.deps import get_current_user, get_db, require_admin
from app.core.time import utcnow

router = APIRouter(prefix="/races", tags=["Races & Results"])

def get_race_or_404(db: Session, race_id: int) -> Race:
    race = db.get(Race, race_id)
    if not race:
        raise HTTPException(status_code=404, detail="Carrera no encontrada")
    return race

@router.get("/next", response_model=RaceOut)
def get_next_race(db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    """Próxima carrera en la que todavía se puede predecir."""
    race = (
        db.query(Race)
        .filter(Race.qualy_date > utcnow())
        .order_by(Race.qualy_date.asc())
        .first()
    )
    if not race:
        raise HTTPException(status_code=404, detail="No hay próximas carreras")
    return race

@router.get("/last", response_model=RaceOut)
def get_last_race(db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    """Última carrera con resultado confirmado."""
    race = (
        db.query(Race)
        .filter(Race.is_result_confirmed.is_(True))
        .order_by(Race.race_date.desc())
        .first()
    )
    if not race:
        raise HTTPException(status_code=404, detail="Todavía no hay carreras confirmadas")
    return race

@router.get("/{race_id}", response_model=RaceOut)
def get_race(race_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    return get_race_or_404(db, race_id)

@router.get("/{race_id}/results", response_model=list[RaceResultEntry])
def get_results(race_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    get_race_or_404(db, race_id)
    return get_race_results(db, race_id)

@router.post("/{race_id}/results", response_model=list[RaceResultEntry])
def save_results(
    race_id: int,
    entries: list[RaceResultEntry],
    db: Session = Depends(get_db),
    current_user = Depends(require_admin),
):
    """
    Guarda el resultado oficial (pendiente). Para que cuente hay que confirmar.
    """
    race = get_race_or_404(db, race_id)

    try:
        result = RaceResultInput(entries=entries)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors()[0]["msg"])

    try:
        return replace_race_results(db, race, result)
    except LookupError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ScoringServiceError as exc:
        raise to_http(exc)

@router.post("/{race_id}/confirm", response_model=RaceOut)
def confirm_race(race_id: int, db: Session = Depends(get_db), current_user = Depends(require_admin)):
    """Confirma (o reconfirma) la carrera y recalcula puntos y clasificaciones."""
    get_race_or_404(db, race_id)
    try:
        return recalculation.confirm_race(db, race_id)
    except ScoringServiceError as exc:
        raise to_http(exc)

@router.post("/{race_id}/unconfirm", response_model=RaceOut)
def unconfirm_race(race_id: int, db: Session = Depends(get_db), current_user = Depends(require_admin)):
    get_race_or_404(db, race_id)
    try:
        return recalculation.unconfirm_race(db, race_id)
    except ScoringServiceError as exc:
        raise to_http(exc)

@router.post("/{race_id}/calculate-points")
def calculate_points(race_id: int, db: Session = Depends(get_db), current_user = Depends(require_admin)):
    """Repara: repite el cálculo sin cambiar la confirmación."""
    get_race_or_404(db, race_id)
    try:
        recalculation.recalculate_race(db, race_id)
    except ScoringServiceError as exc:
        raise to_http(exc)
    return {"message": "Puntos recalculados para la carrera"}

@router.post("/{race_id}/sync-results")
def sync_results(race_id: int, db: Session = Depends(get_db), current_user = Depends(require_admin)):
    """
    Descarga el resultado con FastF1 y devuelve los logs.
    """
    race = get_race_or_404(db, race_id)
    try:
        rows, logs = sync_race_result(db, race)
    except ScoringServiceError as exc:
        raise to_http(exc)

    return {
        "success": True,
        "results": [RaceResultEntry.model_validate(r) for r in rows],
        "logs": logs,
    }
