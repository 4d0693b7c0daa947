"""
================================================================================
USERNAME CHAT - PRESENCE MIDDLEWARE
================================================================================

@file        middleware.py
@description Throttled last_seen updates driven by client requests

MODULE PURPOSE
================================================================================
Clients send their chosen username in the X-Chat-Username header. Every
request carrying it counts as a presence heartbeat, which stamps
ChatUser.last_seen and ChatUser.last_activity.

CACHING STRATEGY
================================================================================
Write Throttle (CHAT_PRESENCE_THROTTLE_SECONDS, default 30):
   Key: "chat_last_seen_update_{username}"
   Purpose: at most one database write per window per username

Explicit online/offline changes go through the presence endpoint
(profiles.update_presence); this middleware never flips is_online.

ERROR HANDLING
================================================================================
A failed write is logged and the request continues.

================================================================================
"""

import logging
from datetime import timedelta
from urllib.parse import quote

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError
from django.utils import timezone

from .profiles import touch_last_seen

logger = logging.getLogger(__name__)


class PresenceHeartbeatMiddleware:
    """
    Update a chat user's last_seen timestamp, throttled through the cache.

    Example Timeline (30 second window):
        00:00 - Request 1: DB write + cache set
        00:15 - Request 2: Cache hit, no DB write
        00:30 - Request 3: Cache expired, DB write + cache set

    Attributes:
        get_response: Next middleware or view in the chain
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        username = request.META.get(settings.CHAT_USERNAME_HEADER, '').strip()

        if username:
            self.heartbeat(username)

        return self.get_response(request)

    def heartbeat(self, username):
        now = timezone.now()
        window = settings.CHAT_PRESENCE_THROTTLE_SECONDS

        # --- Write throttle ---
        cache_key = f"chat_last_seen_update_{quote(username)}"
        last_update = cache.get(cache_key)
        if last_update and (now - last_update) <= timedelta(seconds=window):
            return

        try:
            touch_last_seen(username)
        except DatabaseError:
            logger.warning("Failed to update last_seen for %s", username, exc_info=True)
            return

        cache.set(cache_key, now, window)
