from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from app.db.base_class import Base


class AiUsageLog(Base):
	__tablename__ = "ai_usage_logs"

	id = Column(Integer, primary_key=True, index=True)
	created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
	user_id = Column(Integer, nullable=False, index=True)
	trip_id = Column(Integer, nullable=True, index=True)
	job_id = Column(String(36), nullable=True, index=True)
	task_type = Column(String(32), nullable=False)  # plan_structure, plan_activities
	credits_charged = Column(Integer, nullable=False, default=0)
	model = Column(String(64), nullable=True)
	input_tokens = Column(Integer, nullable=True)
	output_tokens = Column(Integer, nullable=True)
	duration_ms = Column(Integer, nullable=False, default=0)
