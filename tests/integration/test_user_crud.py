import pytest
from fastapi import HTTPException
from pydantic import ValidationError as PydanticValidationError
from conftest import make_user, make_restaurant, PASSWORD
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from models.refresh_tokens import RefreshToken
from models.restaurants import Restaurant
from models.users import User
from schemas.auth_schemas import CreateUserRequest, UpdateProfileRequest
from schemas.catalog_schemas import RestaurantCreateRequest
from services.auth_service import AuthService
from services.token_service import TokenService


def new_user(**overrides) -> CreateUserRequest:
    data = {
        "email": "test@example.com",
        "name": "Test User",
        "password": "SecurePass123!",
        "phone_number": "+201111111111",
    }
    data.update(overrides)
    return CreateUserRequest(**data)


def test_create_customer(session):
    """Test creating a user in the database."""
    created_user = AuthService.create_user(new_user(), session)

    assert created_user.id is not None
    assert created_user.email == "test@example.com"
    assert created_user.role == "customer"
    assert created_user.status == "active"
    assert created_user.is_approved is True

    db_user = session.query(User).filter(User.email == "test@example.com").first()
    assert db_user is not None


def test_create_rider_defaults(session):
    rider = AuthService.create_user(new_user(email="r@example.com", role="rider"), session)

    assert rider.status == "pending"
    assert rider.is_approved is False
    assert rider.vehicle_type == "motorcycle"


def test_create_owner_with_restaurant_in_one_transaction(session):
    owner = AuthService.create_user(new_user(
        email="owner@example.com",
        role="restaurant",
        restaurant=RestaurantCreateRequest(name="Koshary Corner", category="Egyptian")
    ), session)

    restaurant = session.query(Restaurant).filter(Restaurant.owner_id == owner.id).one()
    assert restaurant.name == "Koshary Corner"
    assert restaurant.status == "pending"
    assert restaurant.is_visible is False


def test_create_user_duplicate_email(session):
    """Test that duplicate email registration fails."""
    AuthService.create_user(new_user(email="duplicate@example.com"), session)

    with pytest.raises(ValidationError) as exc_info:
        AuthService.create_user(new_user(email="DUPLICATE@example.com"), session)

    assert exc_info.value.status_code == 400
    assert "already registered" in exc_info.value.detail.lower()


def test_authenticate_user_success(session):
    """Test user authentication with correct credentials."""
    created_user = AuthService.create_user(new_user(), session)

    authenticated_user = AuthService.authenticate_user("test@example.com", "SecurePass123!", session)
    assert authenticated_user == created_user


def test_authenticate_user_wrong_password(session):
    """Test authentication fails with wrong password."""
    AuthService.create_user(new_user(email="wrong@example.com"), session)

    with pytest.raises(HTTPException) as exc_info:
        AuthService.authenticate_user("wrong@example.com", "WRONGPASSWORD00", session)
    assert exc_info.value.status_code == 401


def test_login_inactive_user(session):
    """Test that deactivated users cannot authenticate."""
    created_user = AuthService.create_user(new_user(email="inactive_test@example.com"), session)
    created_user.is_active = False
    session.commit()

    with pytest.raises(HTTPException) as exc_info:
        AuthService.authenticate_user("inactive_test@example.com", "SecurePass123!", session)
    assert exc_info.value.status_code == 401


def test_owner_registration_requires_restaurant():
    with pytest.raises(PydanticValidationError) as exc_info:
        new_user(email="chef@example.com", role="restaurant")

    assert "Restaurant details are required" in str(exc_info.value)


def test_pending_owner_cannot_authenticate(session):
    AuthService.create_user(new_user(
        email="chef@example.com", role="restaurant", restaurant={"name": "Chef's Table"}
    ), session)

    with pytest.raises(AuthorizationError):
        AuthService.authenticate_user("chef@example.com", "SecurePass123!", session)


def test_approved_owner_needs_approved_restaurant(session):
    owner = make_user(session, "chef@example.com", role="restaurant")
    make_restaurant(session, owner, "Rejected Kitchen", status="rejected")

    with pytest.raises(AuthorizationError):
        AuthService.authenticate_user(owner.email, PASSWORD, session)


def test_update_profile(session):
    user = make_user(session, "profile@example.com")

    updated = AuthService.update_profile(session, user.id, UpdateProfileRequest(address="Zamalek 12"))

    assert updated.address == "Zamalek 12"
    assert updated.name == user.name


def test_update_profile_unknown_user(session):
    with pytest.raises(NotFoundError):
        AuthService.update_profile(session, 999, UpdateProfileRequest(name="Ghost"))


def test_deactivate_user(session):
    """Test deactivating a user account."""
    user = make_user(session, "deactivate@example.com")
    TokenService.create_tokens(user.email, user.id, user.role, session)

    AuthService.deactivate_user(session, user.id, PASSWORD)

    db_user = session.query(User).filter(User.id == user.id).first()
    assert db_user.is_active is False
    assert all(t.revoked for t in session.query(RefreshToken).filter(RefreshToken.user_id == user.id))

    assert AuthService.get_active_user_by_id(session, db_user.id) is None
