from fallback_bot.schemas.dialogflow import StatusResponse, WebhookRequest, WebhookResponse

__all__ = ["WebhookRequest", "WebhookResponse", "StatusResponse"]
