from .base import CamelModel, Envelope
from .enums import (
    UserRoleEnum,
    PlanningStatus,
    AttendanceStatus,
    SubmissionStatus,
    NotificationPriority,
)
