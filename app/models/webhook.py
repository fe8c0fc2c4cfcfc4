"""
Inbound chat event model.
Built from the Twilio WhatsApp webhook form payload.
"""

from pydantic import BaseModel
from typing import Optional

from app.utils.geometry import to_float


class InboundEvent(BaseModel):
    from_: str = ""
    body: str = ""
    num_media: int = 0
    media_url: Optional[str] = None
    media_content_type: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None

    @classmethod
    def from_form(cls, form: dict) -> "InboundEvent":
        """Map Twilio's capitalized form keys onto the event."""
        try:
            num_media = int(form.get("NumMedia") or 0)
        except (TypeError, ValueError):
            num_media = 0
        return cls(
            from_=form.get("From") or "",
            body=(form.get("Body") or "").strip(),
            num_media=num_media,
            media_url=form.get("MediaUrl0") or None,
            media_content_type=form.get("MediaContentType0") or None,
            latitude=to_float(form.get("Latitude")),
            longitude=to_float(form.get("Longitude")),
            address=form.get("Address") or None,
        )

    @property
    def text(self) -> str:
        return self.body.strip()

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def has_media(self) -> bool:
        return self.num_media > 0 and bool(self.media_url)
