# Database models package
from app.models.dataset import Dataset
from app.models.model import TrainedModel, ModelStatus, TERMINAL_STATUSES
from app.models.api_key import ApiKey
from app.models.user import User
from app.models.payment import Payment, PaymentStatus

__all__ = [
    "Dataset",
    "TrainedModel",
    "ModelStatus",
    "TERMINAL_STATUSES",
    "ApiKey",
    "User",
    "Payment",
    "PaymentStatus",
]
