"""Identity dependency.

Identity verification happens upstream in the identity gateway, which forwards
the verified user id as "Authorization: Bearer <user_id>" and the billing tier
as "X-Subscription-Tier".
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from docchat.config.plans import PlanTier
from docchat.models.identity import Identity


def get_identity(
    authorization: Annotated[str | None, Header()] = None,
    x_subscription_tier: Annotated[str | None, Header()] = None,
) -> Identity:
    """Build the caller's Identity from gateway headers.

    Raises:
        HTTPException: 401 if the header is missing or malformed
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = authorization[7:].strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        plan = PlanTier.parse(x_subscription_tier)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return Identity(user_id=user_id, plan=plan)
