class ScoringServiceError(Exception):
    """Base de los errores del cálculo de puntos y clasificación."""

    message = "Error calculando la clasificación"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidScoringError(ScoringServiceError):
    message = "La tabla de puntos no es válida"


class RaceResultMissingError(ScoringServiceError):
    message = "Resultado no introducido"


class RaceNotConfirmedError(ScoringServiceError):
    message = "La carrera no está confirmada"


class RaceLockedError(ScoringServiceError):
    message = "La carrera ya está confirmada; desconfírmala para corregir el resultado"


class RecalculationConflictError(ScoringServiceError):
    """Otro recálculo sobre el mismo campeonato/carrera sigue en curso. Reintentable."""

    message = "Ya hay un recálculo en curso, inténtalo de nuevo en unos segundos"


class UpstreamUnavailableError(ScoringServiceError):
    message = "No se pudieron leer los datos necesarios; no se ha guardado ningún cambio"


class ResultSyncError(ScoringServiceError):
    message = "No se pudo importar el resultado desde FastF1"
