"""
Draft housekeeping job - archives drafts whose window has passed.
"""

import logging
from typing import Optional

from kondate.services.shopping_drafts import ShoppingDraftService, get_shopping_draft_service

logger = logging.getLogger(__name__)


async def archive_stale_drafts(service: Optional[ShoppingDraftService] = None) -> dict:
    """Move DRAFT sessions that ended before today to ARCHIVED."""
    service = service or get_shopping_draft_service()
    archived = await service.archive_stale_sessions()
    return {"archived": archived}
