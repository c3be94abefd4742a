import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import func

from sanad import models, schemas
from sanad.api.deps import get_db, require_staff

router = APIRouter(
    prefix="/admin/analytics",
    tags=["Analytics"],
    dependencies=[Depends(require_staff)],
)
logger = logging.getLogger(__name__)

@router.get("/summary", response_model=schemas.AnalyticsSummary)
def get_analytics_summary(db: Session = Depends(get_db)):
    """
    Calculates and returns a summary of claim analytics.
    """
    total_claims = db.query(models.Claim).count()

    status_counts_query = db.query(models.Claim.status, func.count(models.Claim.id)).group_by(models.Claim.status).all()
    status_counts = {status.value: count for status, count in status_counts_query}

    category_counts_query = db.query(models.Claim.category, func.count(models.Claim.id)).group_by(models.Claim.category).all()
    category_counts = {category.value: count for category, count in category_counts_query}

    # Settlement totals, treating an empty table as 0
    financials = db.query(
        func.coalesce(func.sum(models.Settlement.compensation_amount), 0),
        func.coalesce(func.sum(models.Settlement.user_net), 0),
    ).one()

    return schemas.AnalyticsSummary(
        total_claims=total_claims,
        status_counts=status_counts,
        category_counts=category_counts,
        total_compensation_amount=int(financials[0] or 0),
        total_user_net=int(financials[1] or 0),
    )
