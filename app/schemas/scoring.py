from typing import Annotated
from pydantic import BaseModel, ConfigDict, Field

# Enteros estrictos: "5", 5.0 o true no son pesos válidos
Weight = Annotated[int, Field(strict=True, ge=0)]

class ScoringRules(BaseModel):
    """Tabla de puntos de un campeonato (nombres tal cual los envía el frontend)."""
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    points_p1: Weight
    points_p2: Weight
    points_p3: Weight
    points_p4: Weight
    points_p5: Weight
    points_p6: Weight
    points_pole: Weight
    points_fastest_lap: Weight
    points_last_place: Weight
