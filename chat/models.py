"""
================================================================================
USERNAME CHAT - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for the username-based chat backend

MODULE PURPOSE
================================================================================
This module defines the record store of the chat backend:
- Chat identities (ChatUser) keyed by username, no passwords
- Devices and their remembered identities (Device, SavedAccount)
- The shared message feed (Message, Reaction)
- Activity log and typing indicators (UserActivity, TypingIndicator)

DATABASE STRUCTURE
================================================================================
1. Identities
   - ChatUser (username, color, status, avatar, preferences, presence)

2. Device Registry
   - Device (one row per client-generated device identifier)
   - SavedAccount (at most CHAT_MAX_SAVED_ACCOUNTS per device)

3. Messaging
   - Message (single public room)
   - Reaction (one emoji per user per message)

4. Presence & Activity
   - UserActivity (login, status_change, color_change, ...)
   - TypingIndicator (one row per username while typing)

MODEL RELATIONSHIPS
================================================================================
Device (1) ──────> (N) SavedAccount
Message (1) ─────> (N) Reaction

Usernames are stored as plain strings on Message, Reaction, UserActivity
and TypingIndicator: a message outlives the identity that wrote it.

PERFORMANCE CONSIDERATIONS
================================================================================
- Indexed fields: username, timestamp, last_used
- Device rows double as a lock target for account upserts
- Meta ordering for chronological displays

================================================================================
"""

from django.db import models
from django.utils import timezone as dj_timezone

# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

DEFAULT_COLOR = "#000000"

"""
Recognised preference keys and the Python type each value must have.
"""
PREFERENCE_TYPES = {
    'theme': str,
    'notifications': bool,
    'sound': bool,
}

ACTIVITY_CHOICES = [
    ('login', 'Login'),
    ('logout', 'Logout'),
    ('message', 'Message'),
    ('status_change', 'Status change'),
    ('color_change', 'Color change'),
    ('avatar_change', 'Avatar change'),
]


# ============================================================================
# SECTION 1: IDENTITIES
# ============================================================================

class ChatUser(models.Model):
    """
    A chat identity, claimed by picking a username.

    Attributes:
        username (CharField): Display name, unique across the chat
        color (CharField): Name color used when rendering messages
        status (CharField): Free-form status line
        avatar (TextField): Avatar URL or data URL (optional)
        preferences (JSONField): {theme?, notifications?, sound?}
        last_seen (DateTimeField): Last presence heartbeat
        is_online (BooleanField): Online flag set by presence updates
        last_activity (DateTimeField): Last profile or presence change

    Example:
        user = ChatUser.objects.get(username='alice')
        if user.is_online:
            print(f"{user.username} is here")
    """

    username = models.CharField(
        max_length=64,
        unique=True,
        help_text="Chosen username"
    )
    color = models.CharField(
        max_length=32,
        default=DEFAULT_COLOR,
        help_text="Display color for the username"
    )
    status = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Status message"
    )
    avatar = models.TextField(
        null=True,
        blank=True,
        help_text="Avatar URL or data URL"
    )
    preferences = models.JSONField(
        default=dict,
        blank=True,
        help_text="Theme, notification and sound preferences"
    )

    # --- Presence & Activity Tracking ---
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last presence heartbeat"
    )
    is_online = models.BooleanField(
        default=False,
        help_text="Online status"
    )
    last_activity = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last activity timestamp"
    )

    class Meta:
        ordering = ['username']

    def __str__(self):
        return self.username

    def to_dict(self):
        return {
            "username": self.username,
            "color": self.color,
            "status": self.status,
            "avatar": self.avatar,
            "preferences": self.preferences,
            "lastSeen": self.last_seen.isoformat() if self.last_seen else None,
            "isOnline": self.is_online,
            "lastActivity": self.last_activity.isoformat() if self.last_activity else None,
        }


# ============================================================================
# SECTION 2: DEVICE REGISTRY
# ============================================================================

class Device(models.Model):
    """
    A browser or installation, identified by an opaque client token.

    The row is locked with select_for_update() while an account is saved
    for the device, so saves for one device run one at a time.
    """

    device_id = models.CharField(
        max_length=128,
        primary_key=True,
        help_text="Client-generated device identifier"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="First time this device saved an account"
    )

    def __str__(self):
        return self.device_id


class SavedAccount(models.Model):
    """
    An identity remembered on a device for quick switching.

    Attributes:
        device (ForeignKey): Owning device
        username (CharField): Remembered username
        color, status, avatar, preferences: Snapshot of the identity
        last_used (DateTimeField): Refreshed on every save; eviction key

    Meta:
        unique_together: One entry per username per device
        ordering: Most recently used first
    """

    device = models.ForeignKey(
        Device,
        on_delete=models.CASCADE,
        related_name='saved_accounts',
        help_text="Device this account is remembered on"
    )
    username = models.CharField(
        max_length=64,
        help_text="Remembered username"
    )
    color = models.CharField(
        max_length=32,
        help_text="Display color"
    )
    status = models.CharField(
        max_length=255,
        blank=True,
        help_text="Status message"
    )
    avatar = models.TextField(
        null=True,
        blank=True,
        help_text="Avatar URL or data URL"
    )
    preferences = models.JSONField(
        default=dict,
        blank=True,
        help_text="Theme, notification and sound preferences"
    )
    last_used = models.DateTimeField(
        default=dj_timezone.now,
        db_index=True,
        help_text="Last time this account was saved on the device"
    )

    class Meta:
        unique_together = ('device', 'username')
        ordering = ['-last_used']

    def __str__(self):
        return f"{self.username} @ {self.device_id}"

    def to_dict(self):
        return {
            "id": self.pk,
            "deviceId": self.device_id,
            "username": self.username,
            "color": self.color,
            "status": self.status,
            "avatar": self.avatar,
            "preferences": self.preferences,
            "lastUsed": self.last_used.isoformat(),
        }


# ============================================================================
# SECTION 3: MESSAGING
# ============================================================================

class Message(models.Model):
    """
    A message in the shared room.

    Deleting is soft: the row stays with deleted=True so clients can
    render a placeholder.

    Attributes:
        text (TextField): Message body
        username (CharField): Author username
        color (CharField): Author color at send time
        timestamp (DateTimeField): Send time
        edited (BooleanField): Text was changed after sending
        deleted (BooleanField): Soft-deleted by its author
        delivered (BooleanField): Delivery acknowledged
        read_by (JSONField): Usernames that have read the message

    Related Names:
        reactions: QuerySet of Reaction objects
    """

    text = models.TextField(
        help_text="Message text content"
    )
    username = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Author username"
    )
    color = models.CharField(
        max_length=32,
        default=DEFAULT_COLOR,
        help_text="Author color at send time"
    )
    timestamp = models.DateTimeField(
        default=dj_timezone.now,
        db_index=True,
        help_text="Message creation timestamp"
    )
    edited = models.BooleanField(default=False)
    deleted = models.BooleanField(default=False)
    delivered = models.BooleanField(default=False)
    read_by = models.JSONField(
        default=list,
        blank=True,
        help_text="Usernames that have read this message"
    )

    class Meta:
        ordering = ['-timestamp', '-id']

    def __str__(self):
        return f"{self.username}: {self.text[:30]}"

    def to_dict(self):
        return {
            "id": self.pk,
            "text": self.text,
            "username": self.username,
            "color": self.color,
            "timestamp": self.timestamp.isoformat(),
            "edited": self.edited,
            "deleted": self.deleted,
            "delivered": self.delivered,
            "readBy": list(self.read_by),
            "reactions": [
                {"user": r.user, "emoji": r.emoji}
                for r in self.reactions.all()
            ],
        }


class Reaction(models.Model):
    """
    Emoji reaction. A user holds at most one reaction per message;
    reacting again replaces it.
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name='reactions',
        help_text="Message being reacted to"
    )
    user = models.CharField(
        max_length=64,
        help_text="Reacting username"
    )
    emoji = models.CharField(
        max_length=32,
        help_text="Reaction emoji"
    )
    created_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('message', 'user')
        ordering = ['created_at', 'id']


# ============================================================================
# SECTION 4: PRESENCE & ACTIVITY
# ============================================================================

class UserActivity(models.Model):
    """
    Append-only activity log entry for a username.

    Example:
        UserActivity.objects.create(
            username='alice',
            type='status_change',
            details='brb'
        )
    """

    username = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Username the activity belongs to"
    )
    type = models.CharField(
        max_length=20,
        choices=ACTIVITY_CHOICES,
        help_text="Kind of activity"
    )
    timestamp = models.DateTimeField(
        default=dj_timezone.now,
        help_text="When the activity happened"
    )
    details = models.TextField(
        null=True,
        blank=True,
        help_text="New status, color, etc."
    )

    class Meta:
        ordering = ['-timestamp', '-id']
        verbose_name_plural = 'user activities'

    def to_dict(self):
        return {
            "username": self.username,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


class TypingIndicator(models.Model):
    """
    Present while a user is typing. Rows older than
    CHAT_TYPING_TTL_SECONDS are ignored by readers.
    """

    username = models.CharField(
        max_length=64,
        unique=True,
        help_text="Username currently typing"
    )
    timestamp = models.DateTimeField(
        default=dj_timezone.now,
        help_text="Last keystroke heartbeat"
    )

    def to_dict(self):
        return {"username": self.username, "timestamp": self.timestamp.isoformat()}
