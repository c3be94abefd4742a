from .ai import AiCaseRequest, AiCaseResponse, AiClaimData, AiOutput, CaseAnalysisFields
from .analytics import AnalyticsSummary
from .app_setting import AdminSettings, ConversionRateUpdate
from .attachment import Attachment
from .claim import (
    Claim, ClaimCreate, ClaimCreated, ClaimDetail, ClaimUpdate,
    PublicClaim, StatusChange, TrackClaimResponse,
)
from .communication import Communication, CommunicationCreate, CompanyResponseUpdate
from .eligibility import EligibilityCheck, EligibilityResult
from .settlement import Settlement, SettlementCreate
from .timeline import TimelineEvent, TimelineEventCreate
from .verification import (
    BoardingPassData, BoardingPassUploadResult, DocumentCheckOutcome,
    DocumentVerificationRequest, DocumentVerificationResult, FlightCheckResult,
    FlightStatusResult, FlightVerification,
)
