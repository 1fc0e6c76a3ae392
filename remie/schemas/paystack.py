from pydantic import BaseModel, Field
from typing import Dict, Any


class PaystackWebhookEvent(BaseModel):
    """
    Schema for Paystack webhook event payload.

    Paystack sends this when a charge or transfer changes state.
    """
    event: str = Field(..., description="Type of event (e.g., charge.success, transfer.failed)")
    data: Dict[str, Any] = Field(default_factory=dict, description="Event data payload")
