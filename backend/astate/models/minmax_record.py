from sqlalchemy import Column, DateTime, Float, String
from astate.db import Base


class MinMaxRecord(Base):
    __tablename__ = "minmax_records"

    # One logical row per installation ("minmax-singleton")
    id = Column(String(64), primary_key=True)

    last_updated = Column(DateTime(timezone=True), nullable=False)

    # NULL until the channel has seen a sample
    min_altitude = Column(Float, nullable=True)
    max_altitude = Column(Float, nullable=True)
    min_latitude = Column(Float, nullable=True)
    max_latitude = Column(Float, nullable=True)
    min_longitude = Column(Float, nullable=True)
    max_longitude = Column(Float, nullable=True)
    min_speed = Column(Float, nullable=True)
    max_speed = Column(Float, nullable=True)
