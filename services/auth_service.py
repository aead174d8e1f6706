from utils.hashing import verify_password, get_password_hash
from models.users import User, APPROVAL_ROLES
from models.restaurants import Restaurant
from schemas.auth_schemas import CreateUserRequest, UpdateProfileRequest
from sqlalchemy.orm import Session
from fastapi import HTTPException
from starlette import status
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from services.token_service import TokenService
from utils.logger import get_logger

logger = get_logger(__name__)

REGISTRATION_MESSAGES = {
    "customer": "Account created successfully! You can now login.",
    "restaurant": "Restaurant account created! Waiting for admin approval.",
    "rider": "Rider account created! Waiting for admin approval.",
}


class AuthService:

    @staticmethod
    def create_user(request: CreateUserRequest, db: Session):
        """
        Registers a new principal.

        Flow:
        1. Reject duplicate emails (case-insensitive)
        2. Customers start active, restaurant owners and riders start pending
        3. A restaurant owner's restaurant (required by the schema) is created
           in the same transaction, so every pending owner shows up in the
           admin's approval queue
        """
        email = request.email.lower().strip()

        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user:
            logger.warning(
                "Registration attempt with existing email",
                extra={"email": email}
            )
            raise ValidationError("Email already registered")

        if request.restaurant is not None and request.role != "restaurant":
            raise ValidationError("Only restaurant accounts can register a restaurant")

        model = User(
            email=email,
            name=request.name.strip(),
            hashed_password=get_password_hash(request.password),
            role=request.role,
            status="pending" if request.role in APPROVAL_ROLES else "active",
            phone_number=request.phone_number,
            address=request.address,
            latitude=request.latitude,
            longitude=request.longitude,
        )

        if request.role == "rider":
            model.vehicle_type = request.vehicle_type or "motorcycle"
            model.license_number = request.license_number or ""

        db.add(model)

        if request.role == "restaurant":
            db.flush()
            db.add(Restaurant(
                owner_id=model.id,
                status="pending",
                is_active=False,
                **request.restaurant.model_dump()
            ))

        db.commit()
        db.refresh(model)

        return model

    @staticmethod
    def authenticate_user(email: str, password: str, db: Session):
        """
        Checks credentials, then the account state.

        Unknown user, wrong password and deactivated accounts all get the same
        401. Restaurant owners and riders additionally need an approved
        account (and owners an approved restaurant): 403 otherwise.
        """
        email = email.lower().strip()
        user = db.query(User).filter(User.email == email).first()

        if not user:
            logger.warning(
            "Login failed - user not found",
            extra={"email": email}
            )
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate user.")

        if not verify_password(password, user.hashed_password):
            logger.warning(
                "Login failed - invalid password",
                extra={"user_id": user.id, "email": email}
            )
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate user.")

        if not user.is_active:
            logger.warning(
            "Login failed - inactive account",
            extra={"user_id": user.id, "email": email}
            )
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate user.")

        if user.role in APPROVAL_ROLES and user.status != "approved":
            logger.warning(
                "Login attempt before approval",
                extra={"user_id": user.id, "role": user.role, "status": user.status}
            )
            if user.status == "rejected":
                raise AuthorizationError(f"Your {user.role} account was rejected.")
            raise AuthorizationError(f"Your {user.role} account is pending admin approval.")

        if user.role == "restaurant":
            restaurant = user.restaurant
            if restaurant is None:
                raise AuthorizationError("Restaurant not found. Please contact administrator.")
            if restaurant.status != "approved":
                raise AuthorizationError("Your restaurant is pending admin approval.")

        logger.debug(
            "User authenticated successfully",
            extra={"user_id": user.id, "email": email}
        )

        return user

    @staticmethod
    def get_active_user_by_id(db: Session, user_id: int) -> User | None:
        return db.query(User).filter(User.id == user_id, User.is_active == True).one_or_none()

    @staticmethod
    def get_current_active_user(db: Session, user_id: int) -> User:
        model = AuthService.get_active_user_by_id(db, user_id)
        if not model:
            raise NotFoundError("User not found")
        return model

    @staticmethod
    def update_profile(db: Session, user_id: int, body: UpdateProfileRequest) -> User:
        model = AuthService.get_current_active_user(db, user_id)

        changes = body.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError("No valid fields to update")

        if model.role != "rider" and ("vehicle_type" in changes or "license_number" in changes):
            raise ValidationError("Only riders have vehicle details")

        for field, value in changes.items():
            setattr(model, field, value)

        db.commit()
        db.refresh(model)

        logger.info("Profile updated", extra={"user_id": model.id, "fields": sorted(changes)})

        return model

    @staticmethod
    def deactivate_user(db: Session, user_id: int, password: str) -> User:
        model = AuthService.get_current_active_user(db, user_id)

        if not verify_password(plain_password=password, hashed_password=model.hashed_password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password")

        # End every session before flipping the flag
        TokenService.revoke_all_user_tokens(model.id, db)

        model.is_active = False
        db.commit()

        logger.info("User deactivated", extra={"user_id": model.id})

        return model
