import logging
import os

import fastf1
import pandas as pd
from sqlalchemy.orm import Session

from app.core.config import FASTF1_CACHE_DIR
from app.db.models.driver import Driver
from app.db.models.race import Race
from app.db.models.season import Season
from app.schemas.race_result import RaceResultEntry, RaceResultInput
from app.services.errors import ResultSyncError
from app.services.results import replace_race_results

logger = logging.getLogger(__name__)

# Nombres de la BD que no coinciden con los de la API de FastF1
DB_TO_API_MAP = {
    "Gran Premio de España": "Spain",
    "Gran Premio de Mónaco": "Monaco",
    "Gran Premio de Bahrein": "Bahrain",
    "Gran Premio de Arabia Saudí": "Saudi Arabia",
    "Gran Premio de Australia": "Australia",
    "Gran Premio de Japón": "Japan",
    "Gran Premio de China": "China",
    "Gran Premio de Miami": "Miami",
    "Gran Premio de Emilia Romaña": "Imola",
    "Gran Premio de Canadá": "Canada",
    "Gran Premio de Austria": "Austria",
    "Gran Premio de Gran Bretaña": "Great Britain",
    "Gran Premio de Hungría": "Hungary",
    "Gran Premio de Bélgica": "Belgium",
    "Gran Premio de los Países Bajos": "Netherlands",
    "Gran Premio de Italia": "Italy",
    "Gran Premio de Azerbaiyán": "Azerbaijan",
    "Gran Premio de Singapur": "Singapore",
    "Gran Premio de Estados Unidos": "United States",
    "Gran Premio de la Ciudad de México": "Mexico",
    "Gran Premio de São Paulo": "Brazil",
    "Gran Premio de Las Vegas": "Las Vegas",
    "Gran Premio de Catar": "Qatar",
    "Gran Premio de Abu Dabi": "Abu Dhabi",
}

_cache_ready = False


def _enable_cache():
    global _cache_ready
    if not _cache_ready:
        os.makedirs(FASTF1_CACHE_DIR, exist_ok=True)
        fastf1.Cache.enable_cache(FASTF1_CACHE_DIR)
        _cache_ready = True


def pole_sitter(qualy_results: pd.DataFrame) -> str | None:
    """Abreviatura del piloto con 'Position' 1 en la sesión de clasificación."""
    if qualy_results is None or qualy_results.empty:
        return None
    first = qualy_results[qualy_results["Position"] == 1]
    if len(first) != 1:
        return None
    return str(first.iloc[0]["Abbreviation"])


def build_result_entries(
    results: pd.DataFrame,
    fastest_lap_code: str | None,
    drivers_by_code: dict[str, int],
    pole_code: str | None = None,
):
    """
    Convierte la tabla de resultados de FastF1 en filas de resultado.

    - Posiciones 1..6 según 'ClassifiedPosition' (solo numéricas).
    - Pole: el primero de la clasificación (pole_code), no quien sale primero
      en carrera, que cambia con sanciones de parrilla o salidas desde el pit.
    - Último: el clasificado con la posición numérica más alta.
    Pilotos que no están en la BD se ignoran (su categoría queda vacía).
    """
    entries: dict[str, dict] = {}

    def entry_for(code):
        if code not in entries:
            entries[code] = {"driver_id": drivers_by_code[code]}
        return entries[code]

    classified = []
    for _, row in results.iterrows():
        code = str(row["Abbreviation"])
        raw_pos = str(row["ClassifiedPosition"])  # '1', 'R', 'D', 'N'...
        if code not in drivers_by_code:
            logger.warning("Piloto %s no existe en la BD, se ignora", code)
            continue

        if raw_pos.isnumeric():
            position = int(raw_pos)
            classified.append((position, code))
            if position <= 6:
                entry_for(code)["position"] = position

    if classified:
        _, last_code = max(classified)
        entry_for(last_code)["is_last_place"] = True

    if pole_code and pole_code in drivers_by_code:
        entry_for(pole_code)["is_pole"] = True

    if fastest_lap_code and fastest_lap_code in drivers_by_code:
        entry_for(fastest_lap_code)["fastest_lap"] = True

    return RaceResultInput(entries=[RaceResultEntry(**e) for e in entries.values()])


def fetch_session(year: int, api_name: str, identifier: str = "R"):
    _enable_cache()
    session = fastf1.get_session(year, api_name, identifier)
    if identifier == "Q":
        # De la clasificación solo hace falta la tabla de posiciones
        session.load(laps=False, telemetry=False, weather=False, messages=False)
    else:
        # Telemetry=False para ir rápido, pero las vueltas las necesitamos
        session.load(telemetry=False, weather=False, messages=False)
    return session


def sync_race_result(db: Session, race: Race):
    """
    Importa el resultado de carrera desde FastF1 y lo guarda como pendiente.
    La pole sale de la sesión de clasificación ('Q'), el resto de la carrera ('R').
    No confirma la carrera: eso sigue siendo una acción del admin.
    Devuelve (filas guardadas, logs).
    """
    logs = []

    def log(msg):
        logs.append(msg)
        logger.info(msg)

    season = db.get(Season, race.season_id)
    api_name = DB_TO_API_MAP.get(race.name, race.name)
    log(f"Iniciando importación para la carrera {race.id}: '{api_name}' ({season.year})")

    try:
        session = fetch_session(season.year, api_name, "R")
        results = session.results
        if results.empty:
            raise ResultSyncError("Tabla de resultados vacía")

        try:
            fastest_lap_code = str(session.laps.pick_fastest()["Driver"])
            log(f"Vuelta rápida: {fastest_lap_code}")
        except (KeyError, TypeError, ValueError):
            fastest_lap_code = None
            log("No se pudo determinar la vuelta rápida")

        qualy = fetch_session(season.year, api_name, "Q")
        pole_code = pole_sitter(qualy.results)
        if pole_code:
            log(f"Pole: {pole_code}")
        else:
            log("No se pudo determinar la pole")
    except ResultSyncError:
        raise
    except Exception as exc:
        logger.exception("Fallo descargando la sesión de FastF1")
        raise ResultSyncError(f"No se pudo descargar la sesión: {exc}") from exc

    drivers_by_code = {d.short_code.upper(): d.id for d in db.query(Driver).all()}
    result = build_result_entries(results, fastest_lap_code, drivers_by_code, pole_code)
    log(f"{len(result.entries)} pilotos con algo que puntuar")

    rows = replace_race_results(db, race, result)
    log("Resultado guardado como pendiente de confirmar")
    return rows, logs
