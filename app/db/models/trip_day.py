from sqlalchemy import Column, ForeignKey, Integer, Date, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base


class TripDay(Base, TimestampMixin):
	__tablename__ = "trip_days"
	__table_args__ = (UniqueConstraint("trip_id", "date", name="uq_trip_days_trip_date"),)

	id = Column(Integer, primary_key=True, index=True)
	trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
	date = Column(Date, nullable=False)

	trip = relationship("Trip", back_populates="days")
	activities = relationship("Activity", back_populates="day", order_by="Activity.sort_order")
