from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.api.dependencies.database import get_db
from app.core.security import decode_access_token
from app.db.models.user import User
from app.repositories.user import UserRepository
from app.services.exceptions import AuthenticationError

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
	request: Request,
	credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
	db: Session = Depends(get_db),
) -> User:
	"""Resolve the bearer token's `sub` to an active user.

	Raises AuthenticationError (rendered as 401 by the app handler).
	"""
	correlation_id = getattr(request.state, "correlation_id", None)
	if credentials is None or not credentials.credentials:
		raise AuthenticationError("Missing bearer token", correlation_id)
	user_id = decode_access_token(credentials.credentials)
	if user_id is None:
		raise AuthenticationError("Invalid or expired token", correlation_id)
	user = UserRepository(db).get_active(user_id)
	if not user:
		raise AuthenticationError("Unknown or inactive user", correlation_id, {"user_id": user_id})
	# Picked up by the request logging middleware
	request.state.user_id = user.id
	return user
