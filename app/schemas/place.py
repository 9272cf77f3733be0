from typing import Optional, Dict, Any
from pydantic import BaseModel


class PlaceResult(BaseModel):
	"""A normalized geocoding match for one text query."""
	place_id: Optional[str] = None
	latitude: float
	longitude: float
	formatted_address: Optional[str] = None
	map_url: Optional[str] = None


class EnrichPlanRequest(BaseModel):
	plan: Dict[str, Any]
	destination: Optional[str] = None


class EnrichPlanResponse(BaseModel):
	plan: Dict[str, Any]
	enriched: int
