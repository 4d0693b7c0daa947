"""
Message feed, reactions, read receipts and typing indicators.

All operations are single-record reads and writes against the ORM. Missing
messages raise Message.DoesNotExist, except mark_read() which reports
False, and editing or deleting someone else's message raises
PermissionDenied.
"""

from datetime import timedelta

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.utils import timezone

from .models import DEFAULT_COLOR, Message, Reaction, TypingIndicator, UserActivity
from .validators import require_text


# ============================================================================
# SENDING & LISTING
# ============================================================================

def send_message(text, username, color=None):
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Message cannot be empty", code='required')
    username = require_text(username, 'username')

    message = Message.objects.create(
        text=text,
        username=username,
        color=color or DEFAULT_COLOR,
        delivered=True,
        read_by=[],
    )
    UserActivity.objects.create(username=username, type='message')
    return message


def recent_messages(limit=None):
    """Newest ``limit`` messages, returned oldest first for display."""
    if limit is None:
        limit = settings.CHAT_MESSAGE_PAGE_SIZE
    newest = list(Message.objects.prefetch_related('reactions')[:limit])
    newest.reverse()
    return newest


def search_messages(query):
    if not query:
        return []
    return list(
        Message.objects.filter(deleted=False, text__icontains=query)
        .prefetch_related('reactions')
    )


# ============================================================================
# AUTHOR ACTIONS
# ============================================================================

def _own_message(message_id, username):
    message = Message.objects.get(pk=message_id)
    if message.username != username:
        raise PermissionDenied("You can only change your own messages")
    return message


def edit_message(message_id, new_text, username):
    if not isinstance(new_text, str) or not new_text.strip():
        raise ValidationError("Message cannot be empty", code='required')
    message = _own_message(message_id, username)
    message.text = new_text
    message.edited = True
    message.save(update_fields=['text', 'edited'])
    return message


def delete_message(message_id, username):
    message = _own_message(message_id, username)
    message.deleted = True
    message.save(update_fields=['deleted'])
    return message


def react_to_message(message_id, user, emoji):
    """Set ``user``'s reaction on a message, replacing any earlier one."""
    user = require_text(user, 'user')
    emoji = require_text(emoji, 'emoji')
    message = Message.objects.get(pk=message_id)
    Reaction.objects.update_or_create(
        message=message, user=user, defaults={'emoji': emoji}
    )
    return message


# ============================================================================
# RECEIPTS
# ============================================================================

def mark_delivered(message_id):
    Message.objects.filter(pk=message_id).update(delivered=True)


def mark_read(message_id, username):
    username = require_text(username, 'username')
    with transaction.atomic():
        message = Message.objects.select_for_update().filter(pk=message_id).first()
        if message is None:
            return False
        if username not in message.read_by:
            message.read_by = message.read_by + [username]
            message.save(update_fields=['read_by'])
    return True


# ============================================================================
# TYPING INDICATORS
# ============================================================================

def set_typing(username, is_typing):
    username = require_text(username, 'username')
    if is_typing:
        TypingIndicator.objects.update_or_create(
            username=username, defaults={'timestamp': timezone.now()}
        )
    else:
        TypingIndicator.objects.filter(username=username).delete()


def typing_users(exclude=None):
    """Users who typed within the last CHAT_TYPING_TTL_SECONDS."""
    cutoff = timezone.now() - timedelta(seconds=settings.CHAT_TYPING_TTL_SECONDS)
    typing = TypingIndicator.objects.filter(timestamp__gt=cutoff).order_by('timestamp')
    if exclude:
        typing = typing.exclude(username=exclude)
    return list(typing)
