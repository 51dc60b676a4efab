import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status

from kollector.core.exceptions import raise_for_result
from kollector.core.security import require_admin
from kollector.models.user import ApplicationUser
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.user import InvitationCreate, InvitationResponse, UserAccessResponse
from kollector.services.admin_service import AdminService

router = APIRouter()


@router.get("/admin/invitations", response_model=List[InvitationResponse])
async def list_invitations(
    admin: ApplicationUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return await AdminService(uow).get_invitations()

@router.post("/admin/invitations", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    data: InvitationCreate,
    admin: ApplicationUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return raise_for_result(await AdminService(uow).create_invitation(admin.id, data))

@router.delete("/admin/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invitation(
    invitation_id: int,
    admin: ApplicationUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    raise_for_result(await AdminService(uow).delete_invitation(admin.id, invitation_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/admin/invitations/{invitation_id}/activate", response_model=InvitationResponse)
async def activate_invitation(
    invitation_id: int,
    admin: ApplicationUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return raise_for_result(await AdminService(uow).activate_invitation(admin.id, invitation_id))

@router.get("/admin/users", response_model=List[UserAccessResponse])
async def list_users(
    admin: ApplicationUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return await AdminService(uow).get_users()

@router.delete("/admin/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    admin: ApplicationUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """Revoke a user's access and delete their data."""
    raise_for_result(await AdminService(uow).delete_user(admin.id, user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
