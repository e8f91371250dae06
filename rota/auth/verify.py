"""
verify.py
---------
Purpose:
    Resolve the caller's opaque rota identity from the bearer token.

Notes:
    - With ROTA_JWT_SECRET configured, tokens are HS256 JWTs and the
      identity is the `sub` claim.
    - Without a secret the bearer token itself is the identity, which is how
      anonymous client sessions present themselves.
    - Provides `auth_dependency` for rota routes.
"""

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

ROTA_AUDIENCE = "rota"

_security = HTTPBearer()


def verify_jwt(token: str, secret: str) -> dict:
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=ROTA_AUDIENCE,
            options={"verify_exp": True, "require": ["sub"]},
        )
        return decoded
    except jwt.PyJWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dependency(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(_security),
) -> dict:
    token = credentials.credentials
    secret = request.app.state.settings.ROTA_JWT_SECRET
    if secret:
        return verify_jwt(token, secret)
    return {"sub": token, "anonymous": True}
