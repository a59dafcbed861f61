from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload
from app.db.models.season import Season
from app.db.models.driver import Driver
from app.db.models.race import Race
from app.db.models.team import Team
from app.schemas.season import SeasonOut, RaceOut, DriverOut
from app.core.deps import get_current_user, get_db

router = APIRouter(tags=["Seasons (Public)"])

@router.get("/seasons", response_model=list[SeasonOut])
def get_seasons(db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    return db.query(Season).order_by(Season.year.desc()).all()

@router.get("/seasons/{season_id}/races", response_model=list[RaceOut])
def get_season_races(season_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    return (
        db.query(Race)
        .filter(Race.season_id == season_id)
        .order_by(Race.round_number)
        .all()
    )

@router.get("/drivers", response_model=list[DriverOut])
def get_drivers(
    season_id: int | None = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """ Parrilla F1 REAL (pilotos con su escudería) """
    query = db.query(Driver).options(joinedload(Driver.team))
    if season_id:
        query = query.join(Team, Team.id == Driver.team_id).filter(Team.season_id == season_id)
    return query.order_by(Driver.number).all()
