from pydantic import BaseModel, ConfigDict, Field


class CheckoutSessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    session_id: str = Field(alias="sessionId")


class WebhookAck(BaseModel):
    received: bool = True
