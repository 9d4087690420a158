"""The signed-in member's own record."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from memberauth.database import get_db
from memberauth.dependencies import require_identity
from memberauth.exceptions import Unauthenticated
from memberauth.schemas.auth import MemberResponse
from memberauth.services.session_gate import Identity
from memberauth.services.stores import MemberStore

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/profile", response_model=MemberResponse)
def get_profile(db: Session = Depends(get_db), identity: Identity = Depends(require_identity)):
    member = MemberStore(db).find_by_id(identity.member_id)
    if member is None:
        raise Unauthenticated()
    return MemberResponse.model_validate(member)
