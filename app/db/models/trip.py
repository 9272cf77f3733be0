from sqlalchemy import Column, ForeignKey, Integer, String, Text, Float, Date
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base


class Trip(Base, TimestampMixin):
	__tablename__ = "trips"

	id = Column(Integer, primary_key=True, index=True)
	user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
	name = Column(String, nullable=False)
	destination = Column(String, nullable=True)
	destination_lat = Column(Float, nullable=True)
	destination_lng = Column(Float, nullable=True)
	start_date = Column(Date, nullable=True)
	end_date = Column(Date, nullable=True)
	currency = Column(String(8), nullable=False, default="EUR")
	notes = Column(Text, nullable=True)
	cover_image_url = Column(String, nullable=True)
	cover_image_attribution = Column(String, nullable=True)

	user = relationship("User", back_populates="trips")
	days = relationship("TripDay", back_populates="trip", cascade="all, delete-orphan", order_by="TripDay.date")
	stops = relationship("TripStop", back_populates="trip", cascade="all, delete-orphan", order_by="TripStop.sort_order")
	budget_categories = relationship("BudgetCategory", back_populates="trip", cascade="all, delete-orphan")
	activities = relationship("Activity", back_populates="trip", cascade="all, delete-orphan")
