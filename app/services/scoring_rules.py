from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.db.models.scoring_rule import ScoringRule
from app.schemas.scoring import ScoringRules
from app.services.errors import InvalidScoringError

# Orden fijo de las nueve categorías puntuables
CATEGORIES = ("p1", "p2", "p3", "p4", "p5", "p6", "pole", "fastest_lap", "last_place")

DEFAULT_SCORING = ScoringRules(
    points_p1=10,
    points_p2=6,
    points_p3=4,
    points_p4=3,
    points_p5=2,
    points_p6=1,
    points_pole=3,
    points_fastest_lap=1,
    points_last_place=3,
)


def weight_for(rules: ScoringRules, category: str) -> int:
    return getattr(rules, f"points_{category}")


def max_points(rules: ScoringRules) -> int:
    return sum(weight_for(rules, c) for c in CATEGORIES)


def validate_scoring(payload) -> ScoringRules:
    """
    Valida una tabla de puntos antes de guardarla.
    Acepta un dict (JSON del frontend) o un ScoringRules ya construido.
    """
    if isinstance(payload, ScoringRules):
        return payload
    try:
        return ScoringRules.model_validate(payload)
    except ValidationError as exc:
        raise InvalidScoringError(
            "Los puntos deben ser enteros no negativos: "
            + ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
        ) from exc


def get_scoring_rules(db: Session, championship_id: int) -> ScoringRules:
    """Tabla vigente del campeonato, o la de por defecto si no hay ninguna guardada."""
    row = (
        db.query(ScoringRule)
        .filter(ScoringRule.championship_id == championship_id)
        .first()
    )
    if not row:
        return DEFAULT_SCORING
    return ScoringRules(**{f"points_{c}": getattr(row, f"points_{c}") for c in CATEGORIES})


def store_scoring_rules(db: Session, championship_id: int, rules: ScoringRules) -> ScoringRule:
    """Crea o sobrescribe la fila de puntos (sin commit)."""
    row = (
        db.query(ScoringRule)
        .filter(ScoringRule.championship_id == championship_id)
        .first()
    )
    if not row:
        row = ScoringRule(championship_id=championship_id)
        db.add(row)

    for field, value in rules.model_dump().items():
        setattr(row, field, value)

    db.flush()
    return row
