# app/db/models/scoring_rule.py
from sqlalchemy import Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base

class ScoringRule(Base):
    __tablename__ = "scoring_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Una tabla de puntos por campeonato
    championship_id: Mapped[int] = mapped_column(Integer, ForeignKey("championships.id"), unique=True, nullable=False)
    points_p1: Mapped[int] = mapped_column(Integer, nullable=False)
    points_p2: Mapped[int] = mapped_column(Integer, nullable=False)
    points_p3: Mapped[int] = mapped_column(Integer, nullable=False)
    points_p4: Mapped[int] = mapped_column(Integer, nullable=False)
    points_p5: Mapped[int] = mapped_column(Integer, nullable=False)
    points_p6: Mapped[int] = mapped_column(Integer, nullable=False)
    points_pole: Mapped[int] = mapped_column(Integer, nullable=False)
    points_fastest_lap: Mapped[int] = mapped_column(Integer, nullable=False)
    points_last_place: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relaciones
    championship: Mapped["Championship"] = relationship("Championship", back_populates="scoring")
