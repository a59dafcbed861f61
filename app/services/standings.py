import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db.models.championship import Championship
from app.db.models.championship_member import ChampionshipMember
from app.db.models.race import Race
from app.db.models.race_point import RacePoint
from app.db.models.user import User

logger = logging.getLogger(__name__)

_NO_POSITION = float("inf")


def rank_members(entries):
    """
    Ordena la clasificación.

    entries: lista de dicts {"user_id", "total_points", "previous_position"}.
    Devuelve la misma lista ordenada y con "position" = 1..n.

    Orden: más puntos primero; en empate se respeta el orden que ya tenían
    (los que no tenían posición van detrás) y, si no hay orden previo,
    el id de usuario más bajo primero.
    """
    ranked = sorted(
        entries,
        key=lambda e: (
            -e["total_points"],
            e["previous_position"] if e["previous_position"] is not None else _NO_POSITION,
            e["user_id"],
        ),
    )
    for position, entry in enumerate(ranked, start=1):
        entry["position"] = position
    return ranked


def season_totals(db: Session, championship: Championship):
    """
    Devuelve: {user_id: puntos} sumando solo carreras confirmadas
    de la temporada del campeonato.
    """
    rows = (
        db.query(
            RacePoint.user_id,
            func.coalesce(func.sum(RacePoint.points), 0),
        )
        .join(Race, Race.id == RacePoint.race_id)
        .filter(
            RacePoint.championship_id == championship.id,
            Race.season_id == championship.season_id,
            Race.is_result_confirmed.is_(True),
        )
        .group_by(RacePoint.user_id)
        .all()
    )
    return {user_id: int(total) for user_id, total in rows}


def aggregate_standings(db: Session, championship: Championship):
    """
    Recalcula total_points y position de los miembros activos (sin commit).
    Los baneados se quedan sin posición pero no se borra nada suyo.
    """
    totals = season_totals(db, championship)
    members = (
        db.query(ChampionshipMember)
        .filter(ChampionshipMember.championship_id == championship.id)
        .all()
    )

    active = {m.user_id: m for m in members if not m.is_banned}
    for member in members:
        if member.is_banned:
            member.position = None

    ranked = rank_members([
        {
            "user_id": user_id,
            "total_points": totals.get(user_id, 0),
            "previous_position": member.position,
        }
        for user_id, member in active.items()
    ])

    for entry in ranked:
        member = active[entry["user_id"]]
        member.total_points = entry["total_points"]
        member.position = entry["position"]

    db.flush()
    logger.info(
        "Clasificación del campeonato %s: %d activos, %d baneados",
        championship.id, len(active), len(members) - len(active),
    )
    return ranked


def get_standings(db: Session, championship_id: int):
    """Clasificación guardada, solo miembros activos y por posición."""
    rows = (
        db.query(ChampionshipMember, User)
        .join(User, User.id == ChampionshipMember.user_id)
        .filter(
            ChampionshipMember.championship_id == championship_id,
            ChampionshipMember.is_banned.is_(False),
        )
        .order_by(ChampionshipMember.position.is_(None), ChampionshipMember.position, User.id)
        .all()
    )
    return [
        {
            "position": member.position if member.position is not None else index,
            "user_id": user.id,
            "name": user.name,
            "total_points": member.total_points,
        }
        for index, (member, user) in enumerate(rows, start=1)
    ]
