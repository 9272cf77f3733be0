from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base

class User(Base, TimestampMixin):
	__tablename__ = "users"

	id = Column(Integer, primary_key=True, index=True)
	email = Column(String, unique=True, index=True, nullable=False)
	name = Column(String, nullable=False)
	is_active = Column(Boolean, default=True)
	ai_credits = Column(Integer, nullable=False, default=0, server_default="0")

	# Notification preferences
	notifications_enabled = Column(Boolean, nullable=False, default=True, server_default="1")
	notification_push_enabled = Column(Boolean, nullable=False, default=True, server_default="1")
	notification_push_plan_ready = Column(Boolean, nullable=False, default=True, server_default="1")

	plan_jobs = relationship("PlanJob", back_populates="user", cascade="all, delete-orphan")
	trips = relationship("Trip", back_populates="user", cascade="all, delete-orphan")
	push_subscriptions = relationship("PushSubscription", back_populates="user", cascade="all, delete-orphan")
