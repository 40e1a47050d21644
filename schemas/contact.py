from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class ContactRequest(BaseModel):
    name: str = ""
    email: str = ""
    message: str = ""
    turnstileToken: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("turnstileToken", "turnstile_token"),
    )


class ContactForm(BaseModel):
    name: str
    email: str
    message: str


class ContactSubmission(ContactForm):
    id: str
    timestamp: str
    ipAddress: str
    geolocation: str
