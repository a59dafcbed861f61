import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from app.db.models.race_point import RacePoint
from app.schemas.scoring import ScoringRules
from app.services.scoring_rules import CATEGORIES, weight_for

logger = logging.getLogger(__name__)

# Campo de la predicción que corresponde a cada categoría
PREDICTION_FIELDS = {
    "p1": "position_1",
    "p2": "position_2",
    "p3": "position_3",
    "p4": "position_4",
    "p5": "position_5",
    "p6": "position_6",
    "pole": "pole",
    "fastest_lap": "fastest_lap",
    "last_place": "last_place",
}

# Flag del resultado oficial para las categorías que no son posiciones
RESULT_FLAGS = {
    "pole": "is_pole",
    "fastest_lap": "fastest_lap",
    "last_place": "is_last_place",
}


def _single_holder(driver_ids):
    """Devuelve el único piloto de la lista, o None si no hay ninguno o hay varios."""
    unique = set(driver_ids)
    if len(unique) != 1:
        return None
    return unique.pop()


def build_result_map(race_results):
    """
    Devuelve: {categoria: driver_id | None}

    Una categoría queda a None si el resultado no la tiene (o la tiene
    repetida): esa categoría será fallo para todos, el resto puntúa igual.
    """
    by_position = defaultdict(list)
    by_flag = defaultdict(list)

    for rr in race_results:
        if rr.position is not None:
            by_position[rr.position].append(rr.driver_id)
        for category, flag in RESULT_FLAGS.items():
            if getattr(rr, flag, False):
                by_flag[category].append(rr.driver_id)

    result_map = {}
    for slot in range(1, 7):
        result_map[f"p{slot}"] = _single_holder(by_position.get(slot, []))
    for category in RESULT_FLAGS:
        result_map[category] = _single_holder(by_flag.get(category, []))

    missing = [c for c in CATEGORIES if result_map[c] is None]
    if missing:
        logger.warning("Resultado incompleto, categorías sin acierto posible: %s", missing)

    return result_map


def match_prediction(prediction, result_map):
    """
    Compara una predicción con el resultado oficial.
    Devuelve: {categoria: acierto(bool)} con las nueve categorías.

    Sin predicción (None) todo es fallo. Solo cuenta la posición exacta.
    """
    hits = {}
    for category in CATEGORIES:
        real = result_map.get(category)
        if prediction is None or real is None:
            hits[category] = False
            continue
        predicted = getattr(prediction, PREDICTION_FIELDS[category], None)
        hits[category] = predicted is not None and predicted == real
    return hits


def calculate_points(hits, rules: ScoringRules) -> int:
    return sum(weight_for(rules, c) for c in CATEGORIES if hits.get(c))


def calculate_prediction_score(prediction, race_results, rules: ScoringRules):
    result_map = build_result_map(race_results)
    hits = match_prediction(prediction, result_map)

    return {
        "points": calculate_points(hits, rules),
        "hits": hits,
        "breakdown": {
            c: weight_for(rules, c) if hits[c] else 0
            for c in CATEGORIES
        },
    }


def upsert_race_point(
    db: Session,
    championship_id: int,
    race_id: int,
    user_id: int,
    prediction,
    result_map,
    rules: ScoringRules,
) -> RacePoint:
    """
    Escribe (o sobrescribe en el sitio) la fila de puntos del usuario.
    Sin commit: el recálculo decide cuándo confirmar la transacción.
    """
    hits = match_prediction(prediction, result_map)

    race_point = (
        db.query(RacePoint)
        .filter(
            RacePoint.championship_id == championship_id,
            RacePoint.race_id == race_id,
            RacePoint.user_id == user_id,
        )
        .first()
    )

    if not race_point:
        race_point = RacePoint(
            championship_id=championship_id,
            race_id=race_id,
            user_id=user_id,
        )
        db.add(race_point)

    race_point.prediction_id = getattr(prediction, "id", None)
    race_point.points = calculate_points(hits, rules)
    for category in CATEGORIES:
        setattr(race_point, f"guessed_{category}", hits[category])

    return race_point
