from .ai_output import AiOutput
from .app_setting import AppSetting
from .attachment import Attachment
from .claim import Claim, ClaimCategory, ClaimStatus
from .communication import Communication
from .flight_verification import FlightStatus, FlightVerification, VerificationStatus
from .settlement import Settlement
from .timeline_event import TimelineEvent
