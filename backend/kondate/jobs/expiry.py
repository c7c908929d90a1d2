"""
Expiry alert job - pushes a summary of expiring fridge lots.
"""

import logging
from typing import Optional

from kondate.config import get_settings
from kondate.services.fridge import FridgeService, get_fridge_service
from kondate.services.notifications import NotificationService, get_notification_service
from kondate.services.supabase import get_all_user_ids

logger = logging.getLogger(__name__)


async def send_expiry_alerts(
    fridge: Optional[FridgeService] = None,
    notifier: Optional[NotificationService] = None,
    within_days: Optional[int] = None,
) -> dict:
    """
    Alert every user that has lots expiring within `within_days`.

    A failure for one user is logged and does not stop the others.
    """
    settings = get_settings()
    notifier = notifier or get_notification_service()
    if not notifier.enabled:
        logger.warning("Notifications disabled - skipping expiry alerts")
        return {"users_checked": 0, "alerts_sent": 0, "reason": "notifications_disabled"}

    fridge = fridge or get_fridge_service()
    within_days = settings.expiry_alert_days if within_days is None else within_days

    user_ids = await get_all_user_ids(fridge.client)
    sent = 0
    errors = 0
    for user_id in user_ids:
        try:
            expiring = await fridge.expiring(user_id, within_days)
            if expiring.lots and await notifier.send_expiry_alert(expiring.lots):
                sent += 1
        except Exception as e:
            errors += 1
            logger.error(f"Error sending expiry alert for user {user_id}: {e}")

    logger.info(f"Sent {sent} expiry alerts ({len(user_ids)} users checked)")
    return {"users_checked": len(user_ids), "alerts_sent": sent, "errors": errors}
