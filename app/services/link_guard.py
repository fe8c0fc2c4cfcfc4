"""
Single-use, time-boxed capture links.

A capture link hands a chat conversation off to the web capture form. It is
valid while unused and no older than CAPTURE_LINK_TTL_MINUTES. consume()
flips it to used exactly once; it does not re-check the age, so a form
opened in time can still be submitted.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from app.core.settings import settings
from app.models.capture_link import CaptureLink, LinkStatus
from app.models.report import ReportType
from app.services.storage import CaptureLinkRepository, get_repositories
from app.utils.clock import Clock, as_aware, utc_now
from app.utils.phone import normalize_user_id, user_id_variants

logger = logging.getLogger(__name__)

LINK_ID_BYTES = 16

CAPTURE_PAGE = "capture.html"
SUGGESTION_CAPTURE_PAGE = "suggestion-capture.html"


class LinkTokenGuard:
    def __init__(
        self,
        links: Optional[CaptureLinkRepository] = None,
        clock: Clock = utc_now,
        ttl: Optional[timedelta] = None,
    ):
        self._links = links
        self.clock = clock
        self.ttl = ttl or timedelta(minutes=settings.CAPTURE_LINK_TTL_MINUTES)

    @property
    def links(self) -> CaptureLinkRepository:
        if self._links is None:
            self._links = get_repositories().links
        return self._links

    def issue(self, user_id: str, report_type: ReportType) -> str:
        """Create a capture link for a user and return its id."""
        link = CaptureLink(
            link_id=secrets.token_urlsafe(LINK_ID_BYTES),
            user_id=normalize_user_id(user_id, include_prefix=False),
            report_type=report_type,
            created_at=self.clock(),
        )
        self.links.create(link)
        logger.info(f"Capture link {link.link_id} issued to {link.user_id} for {report_type.value}")
        return link.link_id

    def validate(self, link_id: Optional[str], user_id: Optional[str]) -> LinkStatus:
        """
        Check a link without using it up.

        Order: existence, used flag, then age.
        """
        if not link_id or not user_id:
            return LinkStatus.NOT_FOUND

        link = self.links.find(link_id, user_id_variants(user_id))
        if link is None:
            return LinkStatus.NOT_FOUND
        return self.status_of(link)

    def consume(self, link_id: Optional[str], user_id: Optional[str]) -> LinkStatus:
        """
        Mark a link used.

        Returns VALID for the call that performed the flip, ALREADY_USED
        for every later call and NOT_FOUND for unknown links.
        """
        if not link_id or not user_id:
            return LinkStatus.NOT_FOUND

        status = self.links.mark_used(link_id, user_id_variants(user_id), self.clock())
        if status == LinkStatus.VALID:
            logger.info(f"Capture link {link_id} consumed")
        else:
            logger.info(f"Capture link {link_id} not consumed: {status.value}")
        return status

    def lookup(self, link_id: str) -> Optional[CaptureLink]:
        return self.links.find_by_id(link_id)

    def status_of(self, link: CaptureLink) -> LinkStatus:
        if link.used:
            return LinkStatus.ALREADY_USED
        if self.clock() - as_aware(link.created_at) > self.ttl:
            return LinkStatus.EXPIRED
        return LinkStatus.VALID

    @staticmethod
    def capture_url(link_id: str) -> str:
        """Short link sent in chat; /r/{link_id} redirects to the capture page."""
        return f"{settings.SERVER_URL.rstrip('/')}/r/{link_id}"

    @staticmethod
    def capture_page_url(link: CaptureLink) -> str:
        page = SUGGESTION_CAPTURE_PAGE if link.report_type == ReportType.SUGGESTION else CAPTURE_PAGE
        option = link.report_type.menu_option or ""
        return (
            f"{settings.SERVER_URL.rstrip('/')}/{page}"
            f"?userId={link.user_id}&reportType={option}&linkId={link.link_id}"
        )


# Global service instance (singleton pattern)
_link_guard: Optional[LinkTokenGuard] = None


def get_link_guard() -> LinkTokenGuard:
    global _link_guard
    if _link_guard is None:
        _link_guard = LinkTokenGuard()
    return _link_guard
