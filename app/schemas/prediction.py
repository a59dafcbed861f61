from pydantic import BaseModel, ConfigDict, model_validator

POSITION_FIELDS = ("position_1", "position_2", "position_3", "position_4", "position_5", "position_6")

class PredictionPayload(BaseModel):
    position_1: int | None = None
    position_2: int | None = None
    position_3: int | None = None
    position_4: int | None = None
    position_5: int | None = None
    position_6: int | None = None
    pole: int | None = None
    fastest_lap: int | None = None
    last_place: int | None = None

    @model_validator(mode="after")
    def check_distinct_positions(self):
        picks = [getattr(self, f) for f in POSITION_FIELDS if getattr(self, f) is not None]
        if len(picks) != len(set(picks)):
            raise ValueError("No puedes repetir piloto en el top 6")
        return self

    def driver_ids(self) -> set[int]:
        return {v for v in self.model_dump().values() if v is not None}

class PredictionOut(PredictionPayload):
    model_config = ConfigDict(from_attributes=True)

    id: int
    championship_id: int
    race_id: int
    user_id: int

class RacePointOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prediction_id: int | None = None
    race_id: int
    championship_id: int
    user_id: int
    points: int
    guessed_p1: bool
    guessed_p2: bool
    guessed_p3: bool
    guessed_p4: bool
    guessed_p5: bool
    guessed_p6: bool
    guessed_pole: bool
    guessed_fastest_lap: bool
    guessed_last_place: bool
