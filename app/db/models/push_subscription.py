from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base


class PushSubscription(Base, TimestampMixin):
	__tablename__ = "push_subscriptions"

	id = Column(Integer, primary_key=True, index=True)
	user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
	endpoint = Column(String(1024), nullable=False, unique=True)
	p256dh = Column(String(256), nullable=False)
	auth = Column(String(128), nullable=False)

	user = relationship("User", back_populates="push_subscriptions")
