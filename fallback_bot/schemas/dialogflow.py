from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DialogflowIntent(BaseModel):
    name: Optional[str] = None
    displayName: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class QueryResult(BaseModel):
    queryText: Optional[str] = None
    languageCode: Optional[str] = None
    action: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    intent: Optional[DialogflowIntent] = None
    intentDetectionConfidence: Optional[float] = None

    model_config = ConfigDict(extra="ignore")


class OriginalDetectIntentRequest(BaseModel):
    source: Optional[str] = None
    version: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class WebhookRequest(BaseModel):
    """Dialogflow ES v2 fulfillment request."""

    responseId: Optional[str] = None
    session: Optional[str] = None
    queryResult: QueryResult = Field(default_factory=QueryResult)
    originalDetectIntentRequest: OriginalDetectIntentRequest = Field(default_factory=OriginalDetectIntentRequest)

    model_config = ConfigDict(extra="ignore")

    @property
    def intent_name(self) -> Optional[str]:
        intent = self.queryResult.intent
        return intent.displayName if intent else None


class FulfillmentText(BaseModel):
    text: list[str]


class FulfillmentMessage(BaseModel):
    text: FulfillmentText


class WebhookResponse(BaseModel):
    fulfillmentText: str
    fulfillmentMessages: list[FulfillmentMessage]

    @classmethod
    def from_text(cls, text: str) -> "WebhookResponse":
        return cls(
            fulfillmentText=text,
            fulfillmentMessages=[FulfillmentMessage(text=FulfillmentText(text=[text]))],
        )


class StatusResponse(BaseModel):
    status: str
    timestamp: str
    local_timestamp: str
    local_time_formatted: str
    service: str
    environment: str
    store_backend: str
    store_status: str
    business_hours: str
    cache_size: int
