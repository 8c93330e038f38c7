"""Hotel operations endpoints, not yet available"""

from fastapi import APIRouter, Depends

from hms_api.errors import NotImplementedYet
from hms_api.models.user import User
from hms_api.api.auth import require_permission

router = APIRouter()


@router.api_route("/rooms", methods=["GET", "POST"])
async def rooms(
    current_user: User = Depends(require_permission("room.manage")),
):
    raise NotImplementedYet()


@router.api_route("/bookings", methods=["GET", "POST"])
async def bookings(
    current_user: User = Depends(require_permission("booking.manage")),
):
    raise NotImplementedYet()
