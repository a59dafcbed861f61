# app/db/models/race.py
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base

class Race(Base):
    __tablename__ = "races"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    race_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Límite para predecir (inicio de la clasificación)
    qualy_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # pending -> False, confirmed -> True
    is_result_confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relaciones
    season: Mapped["Season"] = relationship("Season", back_populates="races")
    results: Mapped[list["RaceResult"]] = relationship(
        "RaceResult", back_populates="race", cascade="all, delete-orphan"
    )
    predictions: Mapped[list["Prediction"]] = relationship("Prediction", back_populates="race")
