# school_portal/core/permissions.py
from typing import Iterable, Optional, Union

from fastapi import Depends
from sqlalchemy import Select, select

from school_portal.core.dependencies import get_current_claims
from school_portal.core.errors import PermissionDenied
from school_portal.core.logging import logger
from school_portal.models.parent import Parent, StudentParent
from school_portal.models.student import Student
from school_portal.schemas.auth.tokens import TokenClaims
from school_portal.schemas.enums import UserRoleEnum

UNRESTRICTED_ROLES = {UserRoleEnum.ADMIN, UserRoleEnum.TEACHER}


def _as_role(role: Union[UserRoleEnum, str]) -> UserRoleEnum:
    try:
        return UserRoleEnum(role)
    except ValueError:
        logger.error(f"Invalid role value: {role}")
        raise PermissionDenied()


class RoleChecker:
    """Dependency that admits only requesters whose role is in ``allowed_roles``"""

    def __init__(self, allowed_roles: Iterable[UserRoleEnum], message: str = "Access denied"):
        self.allowed_roles = {UserRoleEnum(role) for role in allowed_roles}
        self.message = message

    async def __call__(self, claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        if not self.allows(claims.role):
            logger.warning(
                f"Permission denied: user {claims.user_id} with role {claims.role} "
                f"attempted to access resource requiring roles {sorted(r.value for r in self.allowed_roles)}"
            )
            raise PermissionDenied(self.message)
        return claims

    def allows(self, role: Union[UserRoleEnum, str]) -> bool:
        try:
            return UserRoleEnum(role) in self.allowed_roles
        except ValueError:
            return False


# Common role gates
require_admin = RoleChecker([UserRoleEnum.ADMIN])
require_staff = RoleChecker([UserRoleEnum.ADMIN, UserRoleEnum.TEACHER])
require_teacher = RoleChecker([UserRoleEnum.TEACHER])
require_student = RoleChecker([UserRoleEnum.STUDENT])
require_parent = RoleChecker([UserRoleEnum.PARENT], message="Parent access required")
require_guardian = RoleChecker([UserRoleEnum.PARENT, UserRoleEnum.ADMIN])


def visible_student_ids(role: Union[UserRoleEnum, str], requester_id: int) -> Optional[Select]:
    """
    Sub-select of the student ids a requester may see, or ``None`` for no restriction.

    STUDENT sees its own record, PARENT sees the children linked through
    StudentParent, TEACHER and ADMIN see everyone.
    """
    role = _as_role(role)

    if role in UNRESTRICTED_ROLES:
        return None

    if role == UserRoleEnum.STUDENT:
        return select(Student.id).where(Student.user_id == requester_id)

    if role == UserRoleEnum.PARENT:
        return (
            select(StudentParent.student_id)
            .join(Parent, StudentParent.parent_id == Parent.id)
            .where(Parent.user_id == requester_id)
        )

    raise PermissionDenied()


def scope_to_students(statement: Select, owner_column, role: Union[UserRoleEnum, str], requester_id: int) -> Select:
    """Narrow ``statement`` to rows whose ``owner_column`` is a student the requester may see"""
    allowed = visible_student_ids(role, requester_id)
    if allowed is None:
        return statement
    return statement.where(owner_column.in_(allowed))
