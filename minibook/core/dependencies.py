from typing import Any, Dict

from fastapi import Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from minibook.core.exceptions import MissingTokenError

security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> Dict[str, Any]:
    """
    Dependency that requires a valid Bearer token and returns its identity claims.
    A missing token is a 401; an invalid or expired one is a 403.
    """
    if not credentials or not credentials.credentials:
        raise MissingTokenError()

    jwt_manager = request.app.state.jwt_manager
    payload = jwt_manager.verify(credentials.credentials)

    return {
        "id": payload["id"],
        "username": payload["username"],
        "email": payload["email"],
    }
