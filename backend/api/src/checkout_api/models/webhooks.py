"""API models for the Stripe webhook endpoint."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkout_core.models import WebhookOutcome, WebhookResult


class WebhookResponse(BaseModel):
    """Acknowledgement returned for every authenticated delivery."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processing_result: WebhookResult = Field(
        ..., description="success, already_processed, ignored, warning or error"
    )
    account_label: str | None = None
    message: str | None = None

    @classmethod
    def from_outcome(cls, outcome: WebhookOutcome) -> "WebhookResponse":
        return cls(
            event_id=outcome.event_id,
            event_type=outcome.event_type,
            processing_result=outcome.result,
            account_label=outcome.account_label,
            message=outcome.message,
        )
