from django.core.exceptions import ValidationError

from .models import PREFERENCE_TYPES


def require_text(value, field):
    """Return ``value`` stripped, or raise ValidationError if it is blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", code='required')
    return value.strip()


def clean_preferences(preferences):
    """
    Validate a preferences object.

    Only theme (str), notifications (bool) and sound (bool) are accepted.
    Keys set to None are dropped so an omitted and a null preference mean
    the same thing.
    """
    if preferences is None:
        return {}
    if not isinstance(preferences, dict):
        raise ValidationError("preferences must be an object", code='invalid')

    cleaned = {}
    for key, value in preferences.items():
        expected = PREFERENCE_TYPES.get(key)
        if expected is None:
            raise ValidationError(f"Unknown preference: {key}", code='invalid')
        if value is None:
            continue
        if not isinstance(value, expected):
            raise ValidationError(
                f"Preference {key} must be {expected.__name__}", code='invalid'
            )
        cleaned[key] = value
    return cleaned


def optional_text(value, field):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", code='invalid')
    return value
