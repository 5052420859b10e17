from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from bloodlink.dependencies import get_db
from bloodlink.models.user import User
from bloodlink.schemas.base_schema import UserRole
from bloodlink.services.certificate import CertificateService
from bloodlink.utils.permission_checker import require_role

router = APIRouter(prefix="/certificate", tags=["certificate"])


@router.get("/{donation_id}", response_class=Response)
async def download_certificate(
    donation_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DONOR)),
):
    filename, content = await CertificateService(db).generate(donation_id, current_user)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
