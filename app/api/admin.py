from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from app.db.models.season import Season
from app.db.models.race import Race
from app.db.models.team import Team
from app.db.models.driver import Driver
from app.schemas.season import SeasonCreate, SeasonOut, RaceCreate, RaceOut, TeamCreate, DriverCreate, DriverOut
from app.core.deps import get_db, require_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


# -----------------------
# Temporadas
# -----------------------
@router.post("/seasons", response_model=SeasonOut, status_code=201)
def create_season(
    season: SeasonCreate,
    db: Session = Depends(get_db),
    current_user = Depends(require_admin)
):
    existing = db.query(Season).filter(Season.year == season.year).first()
    if existing:
        raise HTTPException(400, f"Ya existe una temporada con el año {season.year}")

    # Si is_active es True, desactivar otras temporadas
    if season.is_active:
        db.query(Season).update({Season.is_active: False})

    new_season = Season(**season.model_dump())
    db.add(new_season)
    db.commit()
    db.refresh(new_season)
    return new_season


# -----------------------
# Carreras
# -----------------------
@router.post("/seasons/{season_id}/races", response_model=RaceOut, status_code=201)
def create_race(
    season_id: int,
    race: RaceCreate,
    db: Session = Depends(get_db),
    current_user = Depends(require_admin)
):
    season = db.get(Season, season_id)
    if not season:
        raise HTTPException(404, "Temporada no encontrada")

    duplicated = db.query(Race).filter(
        Race.season_id == season_id,
        Race.round_number == race.round_number,
    ).first()
    if duplicated:
        raise HTTPException(400, f"Ya existe la ronda {race.round_number} en esta temporada")

    new_race = Race(season_id=season_id, **race.model_dump())
    db.add(new_race)
    db.commit()
    db.refresh(new_race)
    return new_race


# -----------------------
# Parrilla F1 (Escuderías y Pilotos)
# -----------------------
@router.post("/teams", status_code=201)
def create_team(
    team: TeamCreate,
    db: Session = Depends(get_db),
    current_user = Depends(require_admin)
):
    if not db.get(Season, team.season_id):
        raise HTTPException(404, "Temporada no encontrada")

    exists = db.query(Team).filter(Team.season_id == team.season_id, Team.name == team.name).first()
    if exists:
        raise HTTPException(400, "Ya existe esa escudería en esta temporada")

    new_team = Team(**team.model_dump())
    db.add(new_team)
    db.commit()
    db.refresh(new_team)
    return {"id": new_team.id, "name": new_team.name, "color": new_team.color, "season_id": new_team.season_id}


@router.post("/drivers", response_model=DriverOut, status_code=201)
def create_driver(
    driver: DriverCreate,
    db: Session = Depends(get_db),
    current_user = Depends(require_admin)
):
    if driver.team_id is not None and not db.get(Team, driver.team_id):
        raise HTTPException(404, "Escudería no encontrada")

    data = driver.model_dump()
    data["short_code"] = data["short_code"].upper()
    new_driver = Driver(**data)
    db.add(new_driver)
    db.commit()
    db.refresh(new_driver)
    return new_driver
