import logging
import secrets
import string
from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session
from app.db.models.championship import Championship
from app.db.models.championship_member import ChampionshipMember
from app.db.models.race import Race
from app.db.models.race_point import RacePoint
from app.db.models.season import Season
from app.db.models.user import User
from app.schemas.championship import (
    ChampionshipCreate,
    ChampionshipDetail,
    ChampionshipJoin,
    ChampionshipOut,
    ChampionshipUpdate,
    MemberOut,
    StandingOut,
)
from app.schemas.prediction import RacePointOut
from app.schemas.scoring import ScoringRules
from app.schemas.season import RaceOut
from app.services import recalculation
from app.services.errors import ScoringServiceError
from app.services.scoring_rules import DEFAULT_SCORING, get_scoring_rules, store_scoring_rules
from app.services.standings import get_standings
from app.api.http_errors import to_http
from app.core.deps import get_current_user, get_db
from app.core.time import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Championships"])

def generate_invitation_code():
    """Genera un código aleatorio de 6 caracteres (Ej: A7X-9Y2)"""
    chars = string.ascii_uppercase + string.digits
    part1 = ''.join(secrets.choice(chars) for _ in range(3))
    part2 = ''.join(secrets.choice(chars) for _ in range(3))
    return f"{part1}-{part2}"

# -----------------------
# Helpers de acceso
# -----------------------
def get_championship_or_404(db: Session, championship_id: int) -> Championship:
    championship = db.get(Championship, championship_id)
    if not championship:
        raise HTTPException(status_code=404, detail="Campeonato no encontrado")
    return championship

def get_membership(db: Session, championship_id: int, user_id: int):
    return (
        db.query(ChampionshipMember)
        .filter(
            ChampionshipMember.championship_id == championship_id,
            ChampionshipMember.user_id == user_id,
        )
        .first()
    )

def require_member(db: Session, championship: Championship, user: User) -> ChampionshipMember | None:
    """Miembro activo (o admin global, que puede verlo todo)."""
    membership = get_membership(db, championship.id, user.id)
    if user.role == "admin" and not membership:
        return None
    if not membership:
        raise HTTPException(status_code=403, detail="No perteneces a este campeonato")
    if membership.is_banned:
        raise HTTPException(status_code=403, detail="Estás baneado de este campeonato")
    return membership

def require_championship_admin(championship: Championship, user: User):
    if championship.admin_id != user.id and user.role != "admin":
        raise HTTPException(status_code=403, detail="Solo el admin del campeonato")

def serialize_championship(db: Session, championship: Championship) -> ChampionshipDetail:
    return ChampionshipDetail.model_validate({
        "id": championship.id,
        "name": championship.name,
        "invitation_code": championship.invitation_code,
        "season_id": championship.season_id,
        "admin_id": championship.admin_id,
        "scoring": get_scoring_rules(db, championship.id),
    })

def list_members(db: Session, championship_id: int, banned: bool | None = None):
    query = (
        db.query(ChampionshipMember, User)
        .join(User, User.id == ChampionshipMember.user_id)
        .filter(ChampionshipMember.championship_id == championship_id)
    )
    if banned is not None:
        query = query.filter(ChampionshipMember.is_banned.is_(banned))

    rows = query.order_by(ChampionshipMember.position.is_(None), ChampionshipMember.position, User.id).all()
    return [
        MemberOut(
            id=user.id,
            name=user.name,
            email=user.email,
            is_banned=member.is_banned,
            total_points=member.total_points,
            position=member.position,
        )
        for member, user in rows
    ]

def _user_championships(db: Session, user: User):
    return (
        db.query(Championship)
        .join(ChampionshipMember, ChampionshipMember.championship_id == Championship.id)
        .filter(
            ChampionshipMember.user_id == user.id,
            ChampionshipMember.is_banned.is_(False),
        )
        .order_by(Championship.id)
        .all()
    )

# -----------------------
# Campeonatos
# -----------------------
@router.get("/championships", response_model=list[ChampionshipOut])
def get_championships(db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    """Tus campeonatos (todos, si eres admin global)."""
    if current_user.role == "admin":
        return db.query(Championship).order_by(Championship.id).all()
    return _user_championships(db, current_user)

@router.get("/user/championships", response_model=list[ChampionshipOut])
def get_user_championships(db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    return _user_championships(db, current_user)

@router.post("/championships", response_model=ChampionshipDetail, status_code=201)
def create_championship(
    payload: ChampionshipCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """
    Crea un campeonato con la tabla de puntos por defecto.
    El creador es el admin y el primer miembro.
    """
    season = db.get(Season, payload.season_id)
    if not season:
        raise HTTPException(status_code=404, detail="Temporada no encontrada")

    code = generate_invitation_code()
    while db.query(Championship).filter(Championship.invitation_code == code).first():
        code = generate_invitation_code()  # Reintentar si hay colisión

    championship = Championship(
        name=payload.name,
        season_id=season.id,
        admin_id=current_user.id,
        invitation_code=code,
    )
    db.add(championship)
    db.flush()  # Para obtener el ID

    db.add(ChampionshipMember(championship_id=championship.id, user_id=current_user.id))
    store_scoring_rules(db, championship.id, DEFAULT_SCORING)
    db.commit()

    try:
        recalculation.refresh_standings(db, championship)
    except ScoringServiceError as exc:
        raise to_http(exc)

    logger.info("Campeonato %s creado por el usuario %s", championship.id, current_user.id)
    return serialize_championship(db, championship)

@router.post("/championships/join", response_model=ChampionshipOut)
def join_championship(
    payload: ChampionshipJoin,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    championship = (
        db.query(Championship)
        .filter(Championship.invitation_code == payload.invitation_code.strip().upper())
        .first()
    )
    if not championship:
        raise HTTPException(status_code=404, detail="Código de invitación inválido")

    membership = get_membership(db, championship.id, current_user.id)
    if membership and membership.is_banned:
        raise HTTPException(status_code=403, detail="Estás baneado de este campeonato")
    if membership:
        raise HTTPException(status_code=400, detail="Ya perteneces a este campeonato")

    db.add(ChampionshipMember(championship_id=championship.id, user_id=current_user.id))
    db.commit()

    try:
        recalculation.refresh_standings(db, championship)
    except ScoringServiceError as exc:
        raise to_http(exc)

    return championship

@router.get("/championships/{championship_id}", response_model=ChampionshipDetail)
def get_championship(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)
    return serialize_championship(db, championship)

@router.put("/championships/{championship_id}", response_model=ChampionshipDetail)
def update_championship(
    championship_id: int,
    payload: ChampionshipUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    championship = get_championship_or_404(db, championship_id)
    require_championship_admin(championship, current_user)

    championship.name = payload.name
    db.commit()
    return serialize_championship(db, championship)

@router.post("/championships/{championship_id}/leave")
def leave_championship(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    membership = get_membership(db, championship.id, current_user.id)
    if not membership:
        raise HTTPException(status_code=400, detail="No perteneces a este campeonato")
    if championship.admin_id == current_user.id:
        raise HTTPException(status_code=400, detail="El admin no puede abandonar su campeonato")

    db.delete(membership)
    db.commit()

    try:
        recalculation.refresh_standings(db, championship)
    except ScoringServiceError as exc:
        raise to_http(exc)

    return {"message": "Has abandonado el campeonato"}

# -----------------------
# Miembros y baneos
# -----------------------
@router.get("/championships/{championship_id}/members", response_model=list[MemberOut])
def get_members(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)
    return list_members(db, championship.id)

@router.get("/championships/{championship_id}/members/active", response_model=list[MemberOut])
def get_active_members(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)
    return list_members(db, championship.id, banned=False)

@router.get("/championships/{championship_id}/members/banned", response_model=list[MemberOut])
def get_banned_members(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)
    return list_members(db, championship.id, banned=True)

def _toggle_ban(db: Session, championship_id: int, user_id: int, current_user, banned: bool):
    championship = get_championship_or_404(db, championship_id)
    require_championship_admin(championship, current_user)
    if user_id == championship.admin_id:
        raise HTTPException(status_code=400, detail="No se puede banear al admin del campeonato")

    try:
        recalculation.set_member_ban(db, championship, user_id, banned)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ScoringServiceError as exc:
        raise to_http(exc)

@router.post("/championships/{championship_id}/ban/{user_id}")
def ban_user(championship_id: int, user_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    _toggle_ban(db, championship_id, user_id, current_user, True)
    return {"message": "Usuario baneado"}

@router.post("/championships/{championship_id}/unban/{user_id}")
def unban_user(championship_id: int, user_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    _toggle_ban(db, championship_id, user_id, current_user, False)
    return {"message": "Usuario desbaneado"}

# -----------------------
# Puntuación y clasificación
# -----------------------
@router.get("/championships/{championship_id}/scoring", response_model=ScoringRules)
def get_scoring(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)
    return get_scoring_rules(db, championship.id)

@router.put("/championships/{championship_id}/scoring", response_model=ScoringRules)
def update_scoring(
    championship_id: int,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """
    Cambia la tabla de puntos y recalcula todas las carreras confirmadas
    de la temporada. Si la tabla no es válida se mantiene la anterior.
    """
    championship = get_championship_or_404(db, championship_id)
    require_championship_admin(championship, current_user)

    try:
        return recalculation.update_scoring(db, championship, payload)
    except ScoringServiceError as exc:
        raise to_http(exc)

@router.get("/championships/{championship_id}/standings", response_model=list[StandingOut])
def get_championship_standings(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)
    return get_standings(db, championship.id)

@router.get("/championships/{championship_id}/races/next", response_model=RaceOut)
def get_next_championship_race(championship_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)

    race = (
        db.query(Race)
        .filter(Race.season_id == championship.season_id, Race.qualy_date > utcnow())
        .order_by(Race.qualy_date.asc())
        .first()
    )
    if not race:
        raise HTTPException(status_code=404, detail="No hay próximas carreras")
    return race

@router.get("/championships/{championship_id}/races/{race_id}/race-points", response_model=list[RacePointOut])
def get_race_points(
    championship_id: int,
    race_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    """Puntos de cada miembro activo en la carrera (vacío si no está confirmada)."""
    championship = get_championship_or_404(db, championship_id)
    require_member(db, championship, current_user)

    race = db.get(Race, race_id)
    if not race:
        raise HTTPException(status_code=404, detail="Carrera no encontrada")
    if not race.is_result_confirmed:
        return []

    return (
        db.query(RacePoint)
        .join(
            ChampionshipMember,
            (ChampionshipMember.championship_id == RacePoint.championship_id)
            & (ChampionshipMember.user_id == RacePoint.user_id),
        )
        .filter(
            RacePoint.championship_id == championship.id,
            RacePoint.race_id == race.id,
            ChampionshipMember.is_banned.is_(False),
        )
        .order_by(RacePoint.points.desc(), RacePoint.user_id)
        .all()
    )
