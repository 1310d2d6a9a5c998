from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import IdentityContext, get_db, require_admin
from app.schemas.auth import UserDetailResponse, UserListResponse
from app.services.credential_store import CredentialStore


router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=UserListResponse)
def list_users(
    _: IdentityContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    List all accounts (Admin only).
    """
    users = CredentialStore(db).list_all()
    return UserListResponse(
        users=[UserDetailResponse.model_validate(u) for u in users],
        total=len(users),
    )
