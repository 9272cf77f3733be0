from typing import Optional, Dict, Any, Tuple
from sqlalchemy.orm import Session

from app.db.models.request_log import RequestLog

INBOUND_FIELDS: Tuple[str, ...] = (
	"connection_type", "method", "path_template", "raw_path", "route_name",
	"status_code", "client_ip", "user_agent", "auth_type", "user_id",
)
OUTBOUND_FIELDS: Tuple[str, ...] = ("connection_type", "status_code", "provider", "operation", "target", "error_code")


class RequestLogRepository:
	"""Telemetry inserts for inbound requests and outbound provider calls.

	Each insert commits on its own; callers run it off the request path.
	"""

	def __init__(self, db: Session):
		self.db = db

	@staticmethod
	def _clip(column: str, value: Any) -> Any:
		length = getattr(RequestLog.__table__.c[column].type, "length", None)
		if isinstance(value, str) and length:
			return value[:length]
		return value

	def _insert(self, direction: str, payload: Dict[str, Any], fields: Tuple[str, ...]) -> None:
		values = {field: self._clip(field, payload.get(field)) for field in fields}
		self.db.add(RequestLog(
			direction=direction,
			correlation_id=self._clip("correlation_id", payload.get("correlation_id")) or "unknown",
			duration_ms=int(payload.get("duration_ms") or 0),
			**values,
		))
		self.db.commit()

	def insert_inbound(self, payload: Dict[str, Any]) -> None:
		self._insert("inbound", payload, INBOUND_FIELDS)

	def insert_outbound(self, payload: Dict[str, Any], default_connection: Optional[str] = "http") -> None:
		self._insert("outbound", {"connection_type": default_connection, **payload}, OUTBOUND_FIELDS)
