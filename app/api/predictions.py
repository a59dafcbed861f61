from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from app.db.models.driver import Driver
from app.db.models.prediction import Prediction
from app.db.models.race import Race
from app.schemas.prediction import PredictionOut, PredictionPayload
from app.api.championships import get_championship_or_404, require_member
from app.core.deps import get_current_user, get_db
from app.core.time import utcnow

router = APIRouter(prefix="/championships/{championship_id}/races/{race_id}", tags=["Predictions"])

def get_season_race(db: Session, championship, race_id: int) -> Race:
    race = db.get(Race, race_id)
    if not race or race.season_id != championship.season_id:
        raise HTTPException(status_code=404, detail="Carrera no encontrada en este campeonato")
    return race

@router.get("/prediction", response_model=PredictionOut | None)
def get_my_prediction(
    championship_id: int,
    race_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)
    get_season_race(db, championship, race_id)

    return (
        db.query(Prediction)
        .filter(
            Prediction.championship_id == championship_id,
            Prediction.race_id == race_id,
            Prediction.user_id == current_user.id,
        )
        .first()
    )

@router.post("/prediction", response_model=PredictionOut)
def upsert_prediction(
    championship_id: int,
    race_id: int,
    payload: PredictionPayload,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    championship = get_championship_or_404(db, championship_id)
    membership = require_member(db, championship, current_user)
    if membership is None:
        raise HTTPException(status_code=403, detail="No perteneces a este campeonato")

    race = get_season_race(db, championship, race_id)

    # 🔒 Después de la clasificación ya no se puede tocar
    if race.is_result_confirmed or utcnow() >= race.qualy_date:
        raise HTTPException(status_code=400, detail="Predicción bloqueada")

    driver_ids = payload.driver_ids()
    if driver_ids:
        known = {d_id for (d_id,) in db.query(Driver.id).filter(Driver.id.in_(driver_ids))}
        if known != driver_ids:
            raise HTTPException(status_code=400, detail="Piloto desconocido en la predicción")

    prediction = (
        db.query(Prediction)
        .filter(
            Prediction.championship_id == championship_id,
            Prediction.race_id == race_id,
            Prediction.user_id == current_user.id,
        )
        .first()
    )

    if not prediction:
        prediction = Prediction(
            championship_id=championship_id,
            race_id=race_id,
            user_id=current_user.id,
        )
        db.add(prediction)

    for field, value in payload.model_dump().items():
        setattr(prediction, field, value)

    db.commit()
    db.refresh(prediction)
    return prediction
