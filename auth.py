# auth.py
"""
Bearer-token authentication dependencies.

Tokens are HS256 JWTs issued by the identity service; the payload carries
at least "id" and "role" (admin, manager, mechanic, ...).
"""
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt

import config


def create_access_token(payload: dict) -> str:
     """Sign a token with the configured secret (used by tooling and tests)."""
     return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


# Token Auth Dependency
def verify_token(request: Request) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
     token = auth.split(" ")[1]
     try:
          payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
          return payload
     except JWTError:
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")


def require_roles(*roles: str):
     """Dependency factory: the token's role must be one of roles."""

     def _check(token: dict = Depends(verify_token)) -> dict:
          if token.get("role") not in roles:
               raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Only {', '.join(roles)} can perform this action",
               )
          return token

     return _check
