from sqlalchemy import Column, ForeignKey, Integer, String, Float
from sqlalchemy.orm import relationship
from app.db.base_class import TimestampMixin, Base


class BudgetCategory(Base, TimestampMixin):
	__tablename__ = "budget_categories"

	id = Column(Integer, primary_key=True, index=True)
	trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
	name = Column(String, nullable=False)
	color = Column(String(16), nullable=False, default="#636E72")
	budget_limit = Column(Float, nullable=True)

	trip = relationship("Trip", back_populates="budget_categories")
