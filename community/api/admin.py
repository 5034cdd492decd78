import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import User
from community.db.session import get_db
from community.relationship.auditor import audit_identity
from community.relationship.status import check_pair
from community.schemas.follow import AuditReportResponse, PairCheckResponse
from community.utils.auth import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])
log = logging.getLogger("admin")


@router.get("/relationships/{id}/audit", response_model=AuditReportResponse)
async def audit_relationships(
    id: str,
    dry_run: bool = Query(False, description="Report drift without repairing it"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    admin_id = admin.id
    report = await audit_identity(db, id, repair=not dry_run)
    log.info(
        "Audit of %s requested by %s: found=%d fixed=%d",
        report.identity_id, admin_id, report.found, report.fixed,
    )
    return report.to_dict()


@router.get("/relationships/{follower_id}/{target_id}/check", response_model=PairCheckResponse)
async def check_relationship(
    follower_id: str,
    target_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    check = await check_pair(db, follower_id, target_id)
    return PairCheckResponse.model_validate(check)
