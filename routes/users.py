"""
User Routes
Profile, dashboard, referrals, and admin user management
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import require_admin, require_verified
from routes.payments import list_user_payment_methods
from routes.schemas import UpdateProfileImageRequest, UpdateProfileRequest
from services.auth_service import serialize_user
from services.referral_service import ReferralService
from services.user_service import UserService
from utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/profile")
def update_profile(body: UpdateProfileRequest, user: User = Depends(require_verified),
                   db: Session = Depends(get_db)):
    user = UserService(db).update_profile(user, full_name=body.full_name)
    return success_response(serialize_user(user), message="Profile updated successfully")


@router.put("/profile/image")
def update_profile_image(body: UpdateProfileImageRequest, user: User = Depends(require_verified),
                         db: Session = Depends(get_db)):
    user = UserService(db).update_profile_image(user, body.profile_image)
    return success_response({"profileImage": user.profile_image}, message="Profile image updated successfully")


@router.get("/dashboard")
def dashboard(user: User = Depends(require_verified), db: Session = Depends(get_db)):
    return success_response(UserService(db).dashboard(user))


@router.get("/referrals")
def referrals(user: User = Depends(require_verified), db: Session = Depends(get_db)):
    return success_response(ReferralService(db).summary(user))


# Admin; /all must stay ahead of /{user_id}

@router.get("/all")
def list_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    users = UserService(db).list_users()
    return success_response([serialize_user(u) for u in users], message="Users retrieved successfully")


@router.get("/{user_id}")
def user_details(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return success_response(UserService(db).user_details(user_id), message="User details retrieved successfully")


router.add_api_route("/{user_id}/payment-methods", list_user_payment_methods, methods=["GET"])


@router.delete("/{user_id}")
def delete_user(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    UserService(db).delete_user(user_id)
    logger.info(f"Admin {admin.id} deleted user {user_id}")
    return success_response(message="User deleted successfully")
