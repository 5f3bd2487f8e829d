from sqlalchemy import Column, Integer, String, Float, Date, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from .base import Base


class ImpactFactor(Base):
    __tablename__ = 'impact_factors'
    __table_args__ = (
        # One record per key within an export
        UniqueConstraint('export_date', 'material', 'life_cycle_stage', 'disposition', 'impact_category',
                         name='uq_impact_factor_key'),
    )

    id = Column(Integer, primary_key=True)
    material = Column(String(100), nullable=False)
    life_cycle_stage = Column(String(50), nullable=False)
    disposition = Column(String(100), nullable=False)
    corporate_source = Column(String(200))
    impact_category = Column(String(200), nullable=False)
    impact_units = Column(String(100))
    impact_factor = Column(Float)
    implied_miles = Column(Float)
    category_long = Column(String(500))
    export_date = Column(Date, nullable=False)
    processing_date = Column(Date, nullable=False)
    loaded_at = Column(DateTime(timezone=True), server_default=func.now())
