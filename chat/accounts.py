"""
================================================================================
USERNAME CHAT - SAVED ACCOUNT REGISTRY
================================================================================

@file        accounts.py
@description Per-device registry of remembered chat identities

MODULE PURPOSE
================================================================================
A device (browser, installation) remembers up to CHAT_MAX_SAVED_ACCOUNTS
identities so the user can switch between them. The registry behaves as a
fixed-capacity LRU set:

- Saving a username already remembered on the device updates it in place
  and refreshes last_used.
- Saving a new username on a full device silently evicts the entry with
  the oldest last_used, then inserts the new one.

Callers never see a "too many accounts" error; they can call
account_count() first if they want to warn that an eviction is coming.

CONCURRENCY
================================================================================
save_account() runs in one transaction holding a row lock on the Device.
Two saves for the same device therefore serialize, and cannot both see a
free slot. Reads take no lock and may observe the state before or after a
concurrent save.

ERRORS
================================================================================
- ValidationError: blank device id or username, bad preferences.
  Raised before the database is touched.
- DatabaseError: propagated unchanged, never retried here.
- A row that disappears between lookup and update/delete is not an error.

================================================================================
"""

import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .models import ChatUser, Device, SavedAccount
from .validators import clean_preferences, optional_text, require_text

logger = logging.getLogger(__name__)


def max_accounts():
    return settings.CHAT_MAX_SAVED_ACCOUNTS


def save_account(device_id, username, color, status, avatar=None, preferences=None):
    """
    Remember ``username`` on ``device_id``, evicting the least recently used
    account if the device is full.

    Args:
        device_id (str): Opaque device identifier (required)
        username (str): Username to remember (required)
        color (str): Display color
        status (str): Status message
        avatar (str): Avatar URL or data URL (optional)
        preferences (dict): {theme?, notifications?, sound?}

    Raises:
        ValidationError: device_id or username is blank, or preferences
            are malformed
    """
    device_id = require_text(device_id, 'deviceId')
    username = require_text(username, 'username')
    avatar = optional_text(avatar, 'avatar')
    preferences = clean_preferences(preferences)
    color = color or ""
    status = status or ""
    now = timezone.now()

    fields = {
        'color': color,
        'status': status,
        'avatar': avatar,
        'preferences': preferences,
    }

    with transaction.atomic():
        # Serialization point for every save on this device
        Device.objects.select_for_update().get_or_create(device_id=device_id)

        existing = SavedAccount.objects.filter(
            device_id=device_id, username=username
        ).first()

        if existing is not None:
            SavedAccount.objects.filter(pk=existing.pk).update(last_used=now, **fields)
            return

        accounts = list(SavedAccount.objects.filter(device_id=device_id).order_by('pk'))
        while len(accounts) >= max_accounts():
            oldest = _least_recently_used(accounts)
            SavedAccount.objects.filter(pk=oldest.pk).delete()
            accounts.remove(oldest)
            logger.info(
                "Evicted saved account %s from device %s", oldest.username, device_id
            )

        SavedAccount.objects.create(
            device_id=device_id,
            username=username,
            last_used=now,
            **fields
        )

        ChatUser.objects.update_or_create(
            username=username,
            defaults=dict(
                fields,
                last_seen=now,
                is_online=True,
                last_activity=now,
            ),
        )


def _least_recently_used(accounts):
    # Strict comparison: on equal last_used the first account scanned wins
    oldest = accounts[0]
    for account in accounts[1:]:
        if account.last_used < oldest.last_used:
            oldest = account
    return oldest


def _normalize(device_id):
    # Same normalization as save_account, without rejecting blanks on reads
    return device_id.strip() if isinstance(device_id, str) else device_id


def list_accounts(device_id, limit=None):
    """
    Accounts remembered on ``device_id``, most recently used first.

    Returns a list, not a queryset: the result is a snapshot.
    """
    device_id = _normalize(device_id)
    if limit is None:
        limit = max_accounts()
    return list(
        SavedAccount.objects.filter(device_id=device_id)
        .order_by('-last_used', '-pk')[:limit]
    )


def account_count(device_id):
    device_id = _normalize(device_id)
    return {
        "count": SavedAccount.objects.filter(device_id=device_id).count(),
        "maxAccounts": max_accounts(),
    }


def forget_account(device_id, username):
    """Remove one remembered account. Forgetting an unknown account is a no-op."""
    device_id = require_text(device_id, 'deviceId')
    username = require_text(username, 'username')
    deleted, _ = SavedAccount.objects.filter(
        device_id=device_id, username=username
    ).delete()
    if deleted:
        logger.info("Forgot saved account %s on device %s", username, device_id)
    return deleted > 0
