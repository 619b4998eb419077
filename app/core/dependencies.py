from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth_utils import Principal, Role, verify_bearer_token
from app.core.database import get_database
from app.core.errors import Forbidden

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_database()


async def get_current_principal(
    principal: Principal = Depends(verify_bearer_token)
) -> Principal:
    """The identity provider's principal, trusted as-is"""
    return principal


def require_roles(*roles: Role):
    """
    Dependency factory: only the given roles may call the route

    Raises:
        403: Role not allowed
    """
    allowed = set(roles)

    async def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise Forbidden("You do not have permission to perform this action")
        return principal

    return _check
