"""
Helpers that turn form and serializer errors into Django ValidationErrors.

Services validate input with a ``forms.Form`` or a DRF serializer and raise
``django.core.exceptions.ValidationError`` carrying a field -> messages dict,
so callers can read ``exc.message_dict`` whichever validator was used.
"""

from django.core.exceptions import ValidationError


def clean_form(form):
    """Return ``form.cleaned_data`` or raise ValidationError with the form's errors."""
    if not form.is_valid():
        raise ValidationError(form.errors.as_data())
    return form.cleaned_data


def clean_serializer(serializer):
    """Return ``serializer.validated_data`` or raise ValidationError with its errors."""
    if not serializer.is_valid():
        errors = {
            field: [str(message) for message in (messages if isinstance(messages, list) else [messages])]
            for field, messages in serializer.errors.items()
        }
        raise ValidationError(errors)
    return serializer.validated_data
