"""
Chat identities: preferences, status, color, avatar, presence and the
activity log.

Status, color and preference updates create the identity on first use.
Presence and avatar updates only touch identities that already exist.
"""

import logging

from django.conf import settings
from django.utils import timezone

from .models import DEFAULT_COLOR, ChatUser, UserActivity
from .validators import clean_preferences, require_text

logger = logging.getLogger(__name__)


def get_user(username):
    return ChatUser.objects.filter(username=username).first()


def check_username(username):
    return {"isTaken": ChatUser.objects.filter(username=(username or "").strip()).exists()}


def get_preferences(username):
    user = get_user(username)
    return user.preferences if user else None


def _upsert_user(username, **fields):
    """Patch ``username`` with ``fields``, creating it with defaults if missing."""
    now = timezone.now()
    user = get_user(username)
    if user is not None:
        for name, value in fields.items():
            setattr(user, name, value)
        user.last_activity = now
        user.save(update_fields=list(fields) + ['last_activity'])
        return user, False

    defaults = {
        'color': DEFAULT_COLOR,
        'status': "",
        'preferences': {},
        'last_seen': now,
        'is_online': True,
        'last_activity': now,
    }
    defaults.update(fields)
    return ChatUser.objects.create(username=username, **defaults), True


def update_preferences(username, preferences):
    username = require_text(username, 'username')
    preferences = clean_preferences(preferences)
    user, _ = _upsert_user(username, preferences=preferences, last_seen=timezone.now())
    return user


def update_status(username, status):
    username = require_text(username, 'username')
    status = status or ""
    user, _ = _upsert_user(username, status=status, last_seen=timezone.now())
    UserActivity.objects.create(username=username, type='status_change', details=status)
    return user


def update_appearance(username, color):
    username = require_text(username, 'username')
    color = require_text(color, 'color')
    user, _ = _upsert_user(username, color=color)
    UserActivity.objects.create(username=username, type='color_change', details=color)
    return user


def update_avatar(username, avatar):
    """Set the avatar of an existing user. Unknown users are ignored."""
    username = require_text(username, 'username')
    avatar = require_text(avatar, 'avatar')
    user = get_user(username)
    if user is None:
        logger.debug("Avatar update for unknown user %s ignored", username)
        return None
    user.avatar = avatar
    user.last_activity = timezone.now()
    user.save(update_fields=['avatar', 'last_activity'])
    UserActivity.objects.create(username=username, type='avatar_change')
    return user


def update_presence(username, is_online):
    """Record a presence heartbeat, or a sign-off when ``is_online`` is False."""
    username = require_text(username, 'username')
    user = get_user(username)
    if user is None:
        return None
    now = timezone.now()
    user.is_online = bool(is_online)
    user.last_seen = now
    user.last_activity = now
    user.save(update_fields=['is_online', 'last_seen', 'last_activity'])
    UserActivity.objects.create(username=username, type='login' if is_online else 'logout')
    return user


def touch_last_seen(username):
    """Stamp last_seen without logging activity. Returns rows updated."""
    now = timezone.now()
    return ChatUser.objects.filter(username=username).update(last_seen=now, last_activity=now)


def activity_history(username, limit=None):
    """The newest ``limit`` activities for ``username``, oldest first."""
    if limit is None:
        limit = settings.CHAT_ACTIVITY_PAGE_SIZE
    newest = list(UserActivity.objects.filter(username=username)[:limit])
    newest.reverse()
    return newest


def online_users():
    return list(ChatUser.objects.filter(is_online=True))
