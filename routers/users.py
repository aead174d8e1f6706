from fastapi import APIRouter, status, Request
from utils.deps import user_dependency, db_dependency
from schemas.auth_schemas import DeactivateUserRequest, UpdateProfileRequest, UserResponse
from services.auth_service import AuthService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.get("/me", status_code=status.HTTP_200_OK)
@limiter.limit("30/minute")
async def get_user_info(request: Request, user: user_dependency, db: db_dependency):
    """
    Get current user info (protected endpoint).
    """
    model = AuthService.get_current_active_user(db, user.get("user_id"))

    return UserResponse.model_validate(model).model_dump()


@router.put("/me", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def update_user_info(request: Request, body: UpdateProfileRequest, user: user_dependency, db: db_dependency):
    model = AuthService.update_profile(db, user.get("user_id"), body)

    return {
        "message": "Profile updated successfully",
        "user": UserResponse.model_validate(model).model_dump()
    }


@router.delete("/deactivate", status_code=status.HTTP_200_OK)
@limiter.limit("3/minute")
async def deactivate_user(request: Request, body: DeactivateUserRequest, user: user_dependency, db: db_dependency):
    AuthService.deactivate_user(db, user.get("user_id"), body.password)

    return {"message": "Account deactivated"}
