from sqlalchemy import Column, Integer, BigInteger, String, UniqueConstraint

from app.db.base_class import Base


class RateLimitWindow(Base):
	__tablename__ = "rate_limit_windows"
	__table_args__ = (UniqueConstraint("key", "window_index", name="uq_rate_limit_windows_key_window"),)

	id = Column(Integer, primary_key=True, index=True)
	key = Column(String(128), nullable=False, index=True)  # e.g., generate-plan:42
	window_index = Column(BigInteger, nullable=False)  # epoch seconds // window length
	count = Column(Integer, nullable=False, default=0)
