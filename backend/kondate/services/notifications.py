"""Push notifications through ntfy (https://ntfy.sh)."""

import logging
from typing import Optional

import httpx

from kondate.config import get_settings
from kondate.models.fridge import FridgeLotView

logger = logging.getLogger(__name__)

# Lots listed in one alert before the rest is summarized
MAX_ALERT_LINES = 10

# ntfy priorities
PRIORITY_DEFAULT = 3
PRIORITY_HIGH = 4


def describe_remaining(remain_days: int) -> str:
    if remain_days < 0:
        return f"{-remain_days}d past"
    if remain_days == 0:
        return "today"
    return f"in {remain_days}d"


def format_expiry_alert(lots: list[FridgeLotView]) -> str:
    """One line per lot, soonest first as given; overflow collapses to "+N more"."""
    lines = [
        f"{lot.food_name_snapshot} ({describe_remaining(lot.remain_days)})"
        for lot in lots[:MAX_ALERT_LINES]
    ]
    overflow = len(lots) - MAX_ALERT_LINES
    if overflow > 0:
        lines.append(f"+{overflow} more")
    return "\n".join(lines)


class NotificationService:
    def __init__(self, server: Optional[str] = None, topic: Optional[str] = None):
        settings = get_settings()
        self.server = (server or settings.ntfy_server).rstrip("/")
        self.topic = topic if topic is not None else settings.ntfy_topic
        self.enabled = bool(self.topic)

    async def send(
        self,
        message: str,
        title: str | None = None,
        priority: int = PRIORITY_DEFAULT,
        tags: list[str] | None = None,
    ) -> bool:
        """Post one message to the topic. False when disabled or the post fails."""
        if not self.enabled:
            logger.warning("Notifications disabled (no NTFY_TOPIC configured)")
            return False

        headers = {"Priority": str(priority)}
        if title:
            headers["Title"] = title
        if tags:
            headers["Tags"] = ",".join(tags)

        try:
            async with httpx.AsyncClient(timeout=10) as client:
                response = await client.post(
                    f"{self.server}/{self.topic}",
                    content=message.encode("utf-8"),
                    headers=headers,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"ntfy post to {self.server} failed: {e}")
            return False

        logger.info(f"Notification sent: {title or message[:50]}")
        return True

    async def send_expiry_alert(self, lots: list[FridgeLotView]) -> bool:
        """Expired lots raise the priority."""
        if not lots:
            return False

        expired = any(lot.remain_days <= 0 for lot in lots)
        return await self.send(
            message=format_expiry_alert(lots),
            title=f"{len(lots)} fridge items expiring",
            priority=PRIORITY_HIGH if expired else PRIORITY_DEFAULT,
            tags=["warning" if expired else "hourglass", "kondate"],
        )


# Singleton instance
_notification_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
