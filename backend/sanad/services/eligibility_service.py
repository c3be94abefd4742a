"""
Compensation eligibility for flight disruptions.

Tiers are fixed in SDR (Special Drawing Rights). The SDR to local currency
rate is a system-wide admin setting read at calculation time, so estimates of
open claims follow the current rate. Once a claim is closed the rate is frozen
onto the claim and its estimate no longer moves.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.orm import Session

from sanad import models
from sanad.core import exceptions
from sanad.core.config import settings
from sanad.crud import crud_setting
from sanad.schemas.eligibility import EligibilityResult

logger = logging.getLogger(__name__)

LONG_DELAY_HOURS = 6
SHORT_DELAY_HOURS = 3
LONG_DELAY_SDR = 150
SHORT_DELAY_SDR = 50
CANCELLATION_SDR = 150
DENIED_BOARDING_SDR = 150
MISSED_CONNECTION_SDR = 150


def to_local_amount(sdr_amount: int, conversion_rate: float) -> int:
    # Half-up, not banker's rounding: 50 SDR at 5.1 must give 255
    product = Decimal(str(sdr_amount)) * Decimal(str(conversion_rate))
    return int(product.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_eligibility(issue_type: str, delay_hours: Optional[float], conversion_rate: float) -> EligibilityResult:
    """
    Maps an issue type and delay duration to a compensation tier.

    Pure: identical inputs always give an identical result.
    """
    if conversion_rate is None or conversion_rate <= 0:
        raise exceptions.ValidationError("Conversion rate must be a positive number.")
    if delay_hours is not None and delay_hours < 0:
        raise exceptions.ValidationError("Delay hours cannot be negative.")

    issue = (issue_type or "").strip().lower()

    if issue == "delay":
        if delay_hours is None:
            status, sdr, message = "unknown", 0, "Delay duration is required to assess a delay claim."
        elif delay_hours >= LONG_DELAY_HOURS:
            status, sdr, message = "eligible", LONG_DELAY_SDR, "Delay of 6 hours or more."
        elif delay_hours >= SHORT_DELAY_HOURS:
            status, sdr, message = "eligible", SHORT_DELAY_SDR, "Delay between 3 and 6 hours."
        else:
            status, sdr, message = "not_eligible", 0, "Delays under 3 hours are not compensated."
    elif issue == "cancel":
        status, sdr, message = "eligible", CANCELLATION_SDR, "Flight cancellation."
    elif issue == "denied_boarding":
        status, sdr, message = "eligible", DENIED_BOARDING_SDR, "Denied boarding."
    elif issue == "missed_connection":
        status, sdr, message = (
            "possibly_eligible", MISSED_CONNECTION_SDR,
            "Missed connection; depends on the airline's responsibility for the first leg.",
        )
    else:
        status, sdr, message = "unknown", 0, "No fixed compensation tier for this issue type."

    return EligibilityResult(
        status=status,
        sdr_amount=sdr,
        local_amount=to_local_amount(sdr, conversion_rate),
        conversion_rate=conversion_rate,
        message=message,
    )


def get_conversion_rate(db: Session) -> float:
    """Current SDR to local currency rate: the admin setting if stored, else the configured default."""
    stored = crud_setting.get_setting(db, crud_setting.SDR_TO_SAR)
    if stored is None:
        return settings.DEFAULT_SDR_TO_SAR
    try:
        rate = float(stored)
    except ValueError:
        logger.error(f"Stored {crud_setting.SDR_TO_SAR} value '{stored}' is not a number. Using default.")
        return settings.DEFAULT_SDR_TO_SAR
    if rate <= 0:
        logger.error(f"Stored {crud_setting.SDR_TO_SAR} value {rate} is not positive. Using default.")
        return settings.DEFAULT_SDR_TO_SAR
    return rate


def set_conversion_rate(db: Session, rate: float) -> float:
    if rate is None or rate <= 0:
        raise exceptions.ValidationError("Conversion rate must be a positive number.")
    crud_setting.set_setting(db, crud_setting.SDR_TO_SAR, str(rate))
    logger.info(f"SDR conversion rate set to {rate}")
    return rate


def estimate_for_claim(db: Session, claim: models.Claim) -> EligibilityResult:
    rate = claim.frozen_conversion_rate or get_conversion_rate(db)
    return compute_eligibility(claim.issue_type, claim.delay_hours, rate)


def store_estimate(claim: models.Claim, estimate: EligibilityResult) -> None:
    claim.eligibility_status = estimate.status
    claim.estimated_sdr_amount = estimate.sdr_amount
    claim.estimated_local_amount = estimate.local_amount


def freeze_estimate(db: Session, claim: models.Claim) -> EligibilityResult:
    """Pins the current rate onto a claim entering a terminal status."""
    if claim.frozen_conversion_rate is None:
        claim.frozen_conversion_rate = get_conversion_rate(db)
    estimate = estimate_for_claim(db, claim)
    store_estimate(claim, estimate)
    return estimate
