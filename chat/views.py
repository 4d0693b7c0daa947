import json
import logging
from functools import wraps

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import accounts, messaging, profiles
from .models import Message


# Logger
logger = logging.getLogger(__name__)


class BadRequest(Exception):
    pass


def _json_body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise BadRequest("Invalid JSON body")
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data


def _int_param(value, name):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"{name} must be an integer")
    if number < 1:
        raise BadRequest(f"{name} must be at least 1")
    return number


def api_view(view):
    """Translate the chat layer's exceptions into JSON error responses."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except BadRequest as e:
            return JsonResponse({"error": str(e)}, status=400)
        except ValidationError as e:
            return JsonResponse({"error": "; ".join(e.messages)}, status=400)
        except PermissionDenied as e:
            return JsonResponse({"error": str(e) or "Forbidden"}, status=403)
        except Message.DoesNotExist:
            return JsonResponse({"error": "Message not found"}, status=404)
    return wrapper


# ==================== SAVED ACCOUNTS ====================

@csrf_exempt
@require_POST
@api_view
def save_account(request):
    data = _json_body(request)
    accounts.save_account(
        device_id=data.get('deviceId'),
        username=data.get('username'),
        color=data.get('color', ''),
        status=data.get('status', ''),
        avatar=data.get('avatar'),
        preferences=data.get('preferences'),
    )
    return JsonResponse({"success": True})


@require_GET
@api_view
def saved_accounts(request, device_id):
    limit = request.GET.get('limit')
    limit = _int_param(limit, 'limit') if limit else None
    items = accounts.list_accounts(device_id, limit=limit)
    return JsonResponse({"accounts": [a.to_dict() for a in items]})


@require_GET
@api_view
def account_count(request, device_id):
    return JsonResponse(accounts.account_count(device_id))


@csrf_exempt
@require_POST
@api_view
def forget_account(request, device_id):
    data = _json_body(request)
    removed = accounts.forget_account(device_id, data.get('username'))
    return JsonResponse({"success": True, "removed": removed})


# ==================== MESSAGES ====================

@require_GET
@api_view
def message_list(request):
    limit = request.GET.get('limit')
    limit = _int_param(limit, 'limit') if limit else None
    items = messaging.recent_messages(limit=limit)
    return JsonResponse({"messages": [m.to_dict() for m in items]})


@csrf_exempt
@require_POST
@api_view
def send_message(request):
    data = _json_body(request)
    message = messaging.send_message(
        text=data.get('text'),
        username=data.get('username'),
        color=data.get('color'),
    )
    return JsonResponse({"id": message.pk}, status=201)


@csrf_exempt
@require_POST
@api_view
def edit_message(request, message_id):
    data = _json_body(request)
    message = messaging.edit_message(message_id, data.get('newText'), data.get('username'))
    return JsonResponse({"success": True, "message": message.to_dict()})


@csrf_exempt
@require_POST
@api_view
def delete_message(request, message_id):
    data = _json_body(request)
    messaging.delete_message(message_id, data.get('username'))
    return JsonResponse({"success": True})


@csrf_exempt
@require_POST
@api_view
def react_to_message(request, message_id):
    data = _json_body(request)
    message = messaging.react_to_message(message_id, data.get('user'), data.get('emoji'))
    return JsonResponse({"success": True, "message": message.to_dict()})


@csrf_exempt
@require_POST
@api_view
def mark_delivered(request, message_id):
    messaging.mark_delivered(message_id)
    return JsonResponse({"success": True})


@csrf_exempt
@require_POST
@api_view
def mark_read(request, message_id):
    data = _json_body(request)
    return JsonResponse({"success": messaging.mark_read(message_id, data.get('username'))})


@require_GET
@api_view
def search_messages(request):
    query = (request.GET.get('q') or '').strip()
    return JsonResponse({"messages": [m.to_dict() for m in messaging.search_messages(query)]})


# ==================== TYPING ====================

@csrf_exempt
@require_POST
@api_view
def set_typing(request):
    data = _json_body(request)
    messaging.set_typing(data.get('username'), bool(data.get('isTyping')))
    return JsonResponse({"success": True})


@require_GET
@api_view
def typing_users(request):
    exclude = request.GET.get('exclude')
    return JsonResponse({"typing": [t.to_dict() for t in messaging.typing_users(exclude=exclude)]})


# ==================== USERS ====================

@require_GET
@api_view
def user_detail(request, username):
    user = profiles.get_user(username)
    return JsonResponse({"user": user.to_dict() if user else None})


@require_GET
@api_view
def check_username(request):
    return JsonResponse(profiles.check_username(request.GET.get('username', '')))


@require_GET
@api_view
def online_users(request):
    return JsonResponse({"users": [u.to_dict() for u in profiles.online_users()]})


@require_GET
@api_view
def activity_history(request, username):
    limit = request.GET.get('limit')
    limit = _int_param(limit, 'limit') if limit else None
    items = profiles.activity_history(username, limit=limit)
    return JsonResponse({"activities": [a.to_dict() for a in items]})


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_view
def preferences(request, username):
    if request.method == "GET":
        return JsonResponse({"preferences": profiles.get_preferences(username)})
    data = _json_body(request)
    user = profiles.update_preferences(username, data.get('preferences'))
    return JsonResponse({"success": True, "preferences": user.preferences})


@csrf_exempt
@require_POST
@api_view
def update_status(request, username):
    data = _json_body(request)
    profiles.update_status(username, data.get('status', ''))
    return JsonResponse({"success": True})


@csrf_exempt
@require_POST
@api_view
def update_appearance(request, username):
    data = _json_body(request)
    profiles.update_appearance(username, data.get('color'))
    return JsonResponse({"success": True})


@csrf_exempt
@require_POST
@api_view
def update_avatar(request, username):
    data = _json_body(request)
    user = profiles.update_avatar(username, data.get('avatar'))
    return JsonResponse({"success": True, "updated": user is not None})


@csrf_exempt
@require_POST
@api_view
def update_presence(request, username):
    data = _json_body(request)
    user = profiles.update_presence(username, bool(data.get('isOnline')))
    if user is None:
        logger.info("Presence update for unknown user %s ignored", username)
    return JsonResponse({"success": True, "updated": user is not None})
