from collections import Counter
from pydantic import BaseModel, ConfigDict, Field, model_validator

class RaceResultEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    driver_id: int
    position: int | None = Field(default=None, ge=1)
    is_pole: bool = False
    fastest_lap: bool = False
    is_last_place: bool = False

class RaceResultInput(BaseModel):
    """Resultado oficial completo de una carrera, validado antes de guardarse."""
    entries: list[RaceResultEntry]

    @model_validator(mode="after")
    def check_invariants(self):
        drivers = Counter(e.driver_id for e in self.entries)
        if any(count > 1 for count in drivers.values()):
            raise ValueError("Un piloto aparece más de una vez")

        positions = Counter(e.position for e in self.entries if e.position is not None)
        if any(count > 1 for count in positions.values()):
            raise ValueError("Dos pilotos no pueden compartir posición")

        for flag in ("is_pole", "fastest_lap", "is_last_place"):
            if sum(1 for e in self.entries if getattr(e, flag)) > 1:
                raise ValueError(f"Solo un piloto puede tener {flag}")
        return self
