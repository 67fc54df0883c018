# shopbati/services/email.py
"""
Transactional email through the Resend HTTP API.

The gateway never raises for a provider rejection: it returns one of
EmailSent / SandboxRejected / SendFailed so callers can branch on the type.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Union

import httpx

from ..logger import logger

# phrases Resend uses when an unverified account sends outside its own inbox
SANDBOX_MARKERS = ("testing emails", "verify a domain")


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass(frozen=True)
class EmailSent:
    id: Optional[str] = None


@dataclass(frozen=True)
class SandboxRejected:
    message: str


@dataclass(frozen=True)
class SendFailed:
    message: str
    status_code: Optional[int] = None


SendResult = Union[EmailSent, SandboxRejected, SendFailed]


class EmailGateway(Protocol):
    async def send(self, to: str, subject: str, html: str,
                   attachments: Sequence[Attachment] = ()) -> SendResult:
        ...


def classify_error(status_code: int, payload: dict) -> Union[SandboxRejected, SendFailed]:
    """Map a non-2xx Resend response to a result variant."""
    message = str(payload.get("message") or payload.get("error") or f"HTTP {status_code}")
    if status_code == 403:
        lowered = message.lower()
        if payload.get("name") == "validation_error" or any(m in lowered for m in SANDBOX_MARKERS):
            return SandboxRejected(message=message)
    return SendFailed(message=message, status_code=status_code)


class ResendEmailGateway:
    def __init__(self, api_key: Optional[str], sender: str,
                 api_url: str = "https://api.resend.com/emails",
                 timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    def _payload(self, to: str, subject: str, html: str,
                 attachments: Sequence[Attachment]) -> dict:
        files: List[dict] = [
            {
                "filename": a.filename,
                "content": base64.b64encode(a.content).decode("ascii"),
                "content_type": a.content_type,
            }
            for a in attachments
        ]
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        if files:
            payload["attachments"] = files
        return payload

    async def send(self, to: str, subject: str, html: str,
                   attachments: Sequence[Attachment] = ()) -> SendResult:
        if not self.api_key:
            return SendFailed(message="RESEND_API_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    json=self._payload(to, subject, html, attachments),
                    headers=headers,
                )
        except httpx.RequestError as exc:
            logger.error(f"Resend request failed: {exc}")
            return SendFailed(message=f"Resend request failed: {exc}")

        try:
            data = resp.json()
        except ValueError:
            data = {"message": resp.text[:200]}
        if not isinstance(data, dict):
            data = {}

        if resp.is_success:
            return EmailSent(id=data.get("id"))
        return classify_error(resp.status_code, data)
