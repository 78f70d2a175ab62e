"""Request-scoped dependencies for the ordering API."""

from fastapi import Header, HTTPException

from ordering.context import RequestContext


def request_context(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
    x_household_id: str | None = Header(default=None),
) -> RequestContext:
    """Build the actor context from the identity headers set by the gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing user identity")
    try:
        return RequestContext.build(
            user_id=x_user_id,
            role=x_user_role,
            user_name=x_user_name,
            household_id=x_household_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}") from exc
