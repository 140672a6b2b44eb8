from gatepass.schemas.gate_pass import (
    GatePassCreate, ApprovalRequest, QRScanRequest, DecisionEnum, GateAction,
    GatePassResponse, GatePassListResponse, GatePassEnvelope, ScanResponse,
    QRImageResponse, PassStatsResponse,
)
from gatepass.schemas.notification import NotificationResponse, NotificationListResponse
from gatepass.schemas.user import UserResponse, UserProfileUpdate
