"""
FastAPI dependencies for authentication.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status

from src.auth.jwt import get_token_from_request, verify_token
from src.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operator:
    """Authenticated caller, as resolved by the platform's token."""

    operator_id: str
    role: str


async def get_current_operator(request: Request) -> Operator:
    """
    Get the operator from the request's JWT.

    Raises 401 if no valid token is present.
    """
    token = get_token_from_request(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = verify_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return Operator(operator_id=payload["operator_id"], role=payload["role"])


async def require_closeout_operator(
    operator: Operator = Depends(get_current_operator),
) -> Operator:
    """
    Require a role allowed to review and finalize closeouts.

    Raises 403 otherwise.
    """
    if operator.role not in settings.closeout_operator_roles:
        logger.warning(
            f"Operator {operator.operator_id} with role {operator.role} denied closeout access"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Closeout access required",
        )
    return operator
