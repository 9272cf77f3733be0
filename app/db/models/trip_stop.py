from sqlalchemy import Column, ForeignKey, Integer, String, Float, Date
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base


class TripStop(Base, TimestampMixin):
	__tablename__ = "trip_stops"

	id = Column(Integer, primary_key=True, index=True)
	trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
	name = Column(String, nullable=False)
	lat = Column(Float, nullable=True)
	lng = Column(Float, nullable=True)
	address = Column(String, nullable=True)
	place_id = Column(String, nullable=True)
	type = Column(String(16), nullable=False, default="overnight")  # overnight, waypoint
	nights = Column(Integer, nullable=True)
	arrival_date = Column(Date, nullable=True)
	departure_date = Column(Date, nullable=True)
	sort_order = Column(Integer, nullable=False, default=0)

	trip = relationship("Trip", back_populates="stops")
