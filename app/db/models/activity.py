from sqlalchemy import Column, ForeignKey, Integer, String, Text, Float, Date, JSON
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base


class Activity(Base, TimestampMixin):
	__tablename__ = "activities"

	id = Column(Integer, primary_key=True, index=True)
	trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
	day_id = Column(Integer, ForeignKey("trip_days.id", ondelete="CASCADE"), nullable=False, index=True)
	title = Column(String, nullable=False)
	description = Column(Text, nullable=True)
	category = Column(String(16), nullable=False, default="other", index=True)
	start_time = Column(String(5), nullable=True)  # HH:MM, never set for hotel
	end_time = Column(String(5), nullable=True)
	location_name = Column(String, nullable=True)
	location_lat = Column(Float, nullable=True)
	location_lng = Column(Float, nullable=True)
	location_address = Column(String, nullable=True)
	cost = Column(Float, nullable=True)
	sort_order = Column(Integer, nullable=False, default=0)
	check_in_date = Column(Date, nullable=True)  # hotel only
	check_out_date = Column(Date, nullable=True)  # hotel only
	category_data = Column(JSON, nullable=True)

	trip = relationship("Trip", back_populates="activities")
	day = relationship("TripDay", back_populates="activities")
