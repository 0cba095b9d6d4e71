"""Meeting Approval - Two-phase meeting requests with an approval gate."""

from .approval import ApprovalCoordinator, DecisionResult
from .cache import (
    ApprovalListCache,
    InMemorySnapshotStore,
    JsonSnapshotStore,
    PendingApprovals,
    PendingSnapshot,
)
from .cost import DEFAULT_RATES_PER_KM, RateTable, calculate_expense
from .errors import (
    AuthorizationError,
    ConflictError,
    Failure,
    FailureKind,
    GatewayError,
    NotFoundError,
    TransportError,
)
from .gateway import (
    DecisionReceipt,
    InMemoryMeetingGateway,
    MeetingGateway,
    WriteReceipt,
)
from .http_gateway import HttpMeetingGateway
from .lifecycle import (
    InvalidTransitionError,
    MeetingEvent,
    editable_fields,
    effective_status,
    next_status,
    record_decision,
    start_resubmission,
    visible_fields,
)
from .logistics import LogisticsEditor
from .models import (
    ApprovalEvent,
    Decision,
    LogisticsUpdate,
    MeetingRecord,
    MeetingStatus,
    RequestId,
    TravelMode,
    VisitPlace,
)
from .notifications import (
    Audience,
    NotificationDispatcher,
    NotificationEvent,
    NotificationPreferences,
    RecordingNotifier,
)
from .security import Permission, RoleName, SessionContext
from .settings import WorkflowSettings, configure_logging
from .submission import SubmissionCoordinator, SubmissionResult
from .validation import Phase, ValidationEngine, ValidationIssue, ValidationRule
from .views import MeetingView, filter_meetings, status_summary
from .wire import DEFAULT_WIRE_VERSION, WireMapping, load_wire_mapping

__all__ = [
    "ApprovalCoordinator",
    "ApprovalEvent",
    "ApprovalListCache",
    "Audience",
    "AuthorizationError",
    "ConflictError",
    "DEFAULT_RATES_PER_KM",
    "DEFAULT_WIRE_VERSION",
    "Decision",
    "DecisionReceipt",
    "DecisionResult",
    "Failure",
    "FailureKind",
    "GatewayError",
    "HttpMeetingGateway",
    "InMemoryMeetingGateway",
    "InMemorySnapshotStore",
    "InvalidTransitionError",
    "JsonSnapshotStore",
    "LogisticsEditor",
    "LogisticsUpdate",
    "MeetingEvent",
    "MeetingGateway",
    "MeetingRecord",
    "MeetingStatus",
    "MeetingView",
    "NotFoundError",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationPreferences",
    "PendingApprovals",
    "PendingSnapshot",
    "Permission",
    "Phase",
    "RateTable",
    "RecordingNotifier",
    "RequestId",
    "RoleName",
    "SessionContext",
    "SubmissionCoordinator",
    "SubmissionResult",
    "TransportError",
    "TravelMode",
    "ValidationEngine",
    "ValidationIssue",
    "ValidationRule",
    "VisitPlace",
    "WireMapping",
    "WorkflowSettings",
    "WriteReceipt",
    "calculate_expense",
    "configure_logging",
    "editable_fields",
    "effective_status",
    "filter_meetings",
    "load_wire_mapping",
    "next_status",
    "record_decision",
    "start_resubmission",
    "status_summary",
    "visible_fields",
    "__version__",
]
__version__ = "0.1.0"
