"""
================================================================================
USERNAME CHAT - URL CONFIGURATION
================================================================================

@file        urls.py
@description JSON API routing for the chat backend

URL STRUCTURE OVERVIEW
================================================================================
1. Saved Accounts (per-device remembered identities)
2. Messages (feed, edit, delete, react, receipts, search)
3. Typing Indicators
4. Users (profile, preferences, status, color, avatar, presence, activity)

URL PARAMETER TYPES
================================================================================
- <str:device_id>: Opaque client device identifier
- <str:username>: Chat username
- <int:message_id>: Message primary key

All bodies and responses are JSON. Errors come back as {"error": "..."}.

================================================================================
"""

from django.urls import path
from . import views


urlpatterns = [

    # ========================================================================
    # SECTION 1: SAVED ACCOUNTS
    # ========================================================================

    path(
        "api/accounts/",
        views.save_account,
        name="save_account"
    ),  # Remember an identity on a device (POST)

    path(
        "api/devices/<str:device_id>/accounts/",
        views.saved_accounts,
        name="saved_accounts"
    ),  # Most recently used first

    path(
        "api/devices/<str:device_id>/accounts/count/",
        views.account_count,
        name="account_count"
    ),  # {count, maxAccounts}

    path(
        "api/devices/<str:device_id>/accounts/forget/",
        views.forget_account,
        name="forget_account"
    ),  # Drop one remembered identity (POST)


    # ========================================================================
    # SECTION 2: MESSAGES
    # ========================================================================

    path(
        "api/messages/",
        views.message_list,
        name="message_list"
    ),  # Latest page, oldest first

    path(
        "api/messages/send/",
        views.send_message,
        name="send_message"
    ),

    path(
        "api/messages/search/",
        views.search_messages,
        name="search_messages"
    ),  # ?q=

    path(
        "api/messages/<int:message_id>/edit/",
        views.edit_message,
        name="edit_message"
    ),  # Author only

    path(
        "api/messages/<int:message_id>/delete/",
        views.delete_message,
        name="delete_message"
    ),  # Soft delete, author only

    path(
        "api/messages/<int:message_id>/react/",
        views.react_to_message,
        name="react_to_message"
    ),

    path(
        "api/messages/<int:message_id>/delivered/",
        views.mark_delivered,
        name="mark_delivered"
    ),

    path(
        "api/messages/<int:message_id>/read/",
        views.mark_read,
        name="mark_read"
    ),


    # ========================================================================
    # SECTION 3: TYPING INDICATORS
    # ========================================================================

    path(
        "api/typing/",
        views.typing_users,
        name="typing_users"
    ),  # ?exclude=<username>

    path(
        "api/typing/set/",
        views.set_typing,
        name="set_typing"
    ),


    # ========================================================================
    # SECTION 4: USERS
    # ========================================================================

    path(
        "api/users/online/",
        views.online_users,
        name="online_users"
    ),

    path(
        "api/users/check/",
        views.check_username,
        name="check_username"
    ),  # ?username=

    path(
        "api/users/<str:username>/",
        views.user_detail,
        name="user_detail"
    ),

    path(
        "api/users/<str:username>/preferences/",
        views.preferences,
        name="preferences"
    ),  # GET reads, POST replaces

    path(
        "api/users/<str:username>/status/",
        views.update_status,
        name="update_status"
    ),

    path(
        "api/users/<str:username>/appearance/",
        views.update_appearance,
        name="update_appearance"
    ),

    path(
        "api/users/<str:username>/avatar/",
        views.update_avatar,
        name="update_avatar"
    ),

    path(
        "api/users/<str:username>/presence/",
        views.update_presence,
        name="update_presence"
    ),

    path(
        "api/users/<str:username>/activity/",
        views.activity_history,
        name="activity_history"
    ),
]
