from sqlalchemy import Column, ForeignKey, Integer, String, DateTime
from sqlalchemy.sql import func

from app.db.base_class import Base


class NotificationLog(Base):
	__tablename__ = "notification_logs"

	id = Column(Integer, primary_key=True, index=True)
	created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
	user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
	category = Column(String(32), nullable=False, index=True)  # e.g., plan_ready
	job_id = Column(String(36), nullable=True)
	title = Column(String(256), nullable=True)
	body = Column(String(512), nullable=True)
	delivered_count = Column(Integer, nullable=False, default=0)
