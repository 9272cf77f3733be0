import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Text, DateTime, JSON
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base


class PlanJob(Base, TimestampMixin):
	__tablename__ = "plan_jobs"

	id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
	user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
	trip_id = Column(Integer, ForeignKey("trips.id", ondelete="SET NULL"), nullable=True, index=True)
	status = Column(String(16), nullable=False, index=True)  # pending, generating, completed, failed, cancelled
	context = Column(JSON, nullable=False)
	messages = Column(JSON, nullable=False)
	structure_json = Column(JSON, nullable=True)
	progress = Column(JSON, nullable=True)  # {phase, current_day, total_days, current_date?, trip_id?}
	credits_charged = Column(Integer, nullable=False, default=0)
	error = Column(Text, nullable=True)
	completed_at = Column(DateTime(timezone=True), nullable=True)
	heartbeat_at = Column(DateTime(timezone=True), nullable=True, index=True)

	user = relationship("User", back_populates="plan_jobs")
	trip = relationship("Trip")
