# Imports every model so that Base.metadata knows all tables before create_all.
from sanad.db.base_class import Base
from sanad.models.ai_output import AiOutput
from sanad.models.app_setting import AppSetting
from sanad.models.attachment import Attachment
from sanad.models.claim import Claim
from sanad.models.communication import Communication
from sanad.models.flight_verification import FlightVerification
from sanad.models.settlement import Settlement
from sanad.models.timeline_event import TimelineEvent
