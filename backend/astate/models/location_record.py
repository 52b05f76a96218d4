from sqlalchemy import Column, DateTime, Float, String
from astate.db import Base


class LocationRecord(Base):
    __tablename__ = "location_records"

    # uuid4 generated by the client that recorded the fix
    id = Column(String(64), primary_key=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    altitude = Column(Float, nullable=False)
