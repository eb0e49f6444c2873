"""Authentication and authorization dependencies."""

from typing import Annotated

from fastapi import Depends, Header

from src.cars.api.dependencies.repositories import ProjectAdminRepo, ProjectRepo, UserRepo
from src.cars.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from src.cars.core.logging import bind_identity_context, bind_project_context
from src.cars.core.security import decode_token
from src.cars.models import Project, User


async def get_identity_key(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Validate the bearer token and return the caller's identity key."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid authorization header")

    payload = decode_token(authorization[7:])
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    identity_key = payload.get("sub")
    if not identity_key:
        raise AuthenticationError("Invalid token payload")

    bind_identity_context(identity_key)
    return str(identity_key)


IdentityKey = Annotated[str, Depends(get_identity_key)]


async def get_current_user(identity_key: IdentityKey, user_repo: UserRepo) -> User:
    """The registered user behind the bearer token."""
    user = await user_repo.get_by_identity_key(identity_key)
    if user is None:
        raise AuthenticationError("User not registered")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_admin_project(
    project_id: str,
    user: CurrentUser,
    project_repo: ProjectRepo,
    admin_repo: ProjectAdminRepo,
) -> Project:
    """Resolve {project_id} and require the caller to administer it."""
    project = await project_repo.get_by_external_id(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if not await admin_repo.is_admin(project.id, user.id):
        raise PermissionDeniedError("Not admin of project")
    bind_project_context(project.external_id)
    return project


AdminProject = Annotated[Project, Depends(get_admin_project)]
