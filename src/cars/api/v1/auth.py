"""Identity registration endpoints."""

from fastapi import APIRouter, status

from src.cars.api.dependencies import CurrentUser, DBSession, IdentityKey, UserRepo
from src.cars.core.logging import get_logger
from src.cars.models import User
from src.cars.schemas import RegisterRequest, UserRead

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
    summary="Register identity",
    description="Record the notification email for the bearer's identity key. "
    "Registering again updates the email.",
    responses={
        200: {"description": "Identity registered"},
        401: {"description": "Missing or invalid bearer token"},
    },
)
async def register(
    request: RegisterRequest,
    identity_key: IdentityKey,
    session: DBSession,
    user_repo: UserRepo,
) -> UserRead:
    user = await user_repo.get_by_identity_key(identity_key)
    if user is None:
        user = User(identity_key=identity_key, email=str(request.email))
        user_repo.add(user)
        logger.info("Identity registered")
    else:
        user.email = str(request.email)
        session.add(user)
    await session.commit()
    await session.refresh(user)
    return UserRead.model_validate(user)


@router.get(
    "/me",
    response_model=UserRead,
    summary="Current identity",
    responses={
        200: {"description": "Registered identity"},
        401: {"description": "Not authenticated or not registered"},
    },
)
async def me(user: CurrentUser) -> UserRead:
    return UserRead.model_validate(user)
