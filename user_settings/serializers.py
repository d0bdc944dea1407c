from django import forms
from django.conf import settings
from django.contrib.auth.hashers import check_password
from django.core.exceptions import ValidationError
from rest_framework import serializers

from authentication.validators import validate_email_address, validate_name, validate_password

THEMES = ("light", "dark")
API_KEY_PROVIDERS = ("openai", "claude", "gemini", "llama")


class ChangePasswordSerializer(forms.Form):
    """
    Serializer for password change request.
    Validates current password and new password strength.
    """
    current_password = forms.CharField(
        max_length=255,
        strip=False,
        widget=forms.PasswordInput(),
        help_text="Current password for verification"
    )
    new_password = forms.CharField(
        max_length=255,
        strip=False,
        widget=forms.PasswordInput(),
        help_text="New password (minimum 6 characters)"
    )
    confirm_password = forms.CharField(
        max_length=255,
        strip=False,
        required=False,
        widget=forms.PasswordInput(),
        help_text="Confirm new password"
    )

    def __init__(self, user=None, *args, **kwargs):
        """Initialize with the stored user document for password verification"""
        self.user = user
        super().__init__(*args, **kwargs)

    def clean_current_password(self):
        """Validate that the current password is correct"""
        current_password = self.cleaned_data.get('current_password')

        if not current_password:
            raise ValidationError("Current password is required")

        if self.user is not None:
            if not check_password(current_password, self.user.get('password') or ''):
                raise ValidationError("Current password is incorrect")

        return current_password

    def clean_new_password(self):
        """Validate new password strength"""
        new_password = self.cleaned_data.get('new_password')
        current_password = self.cleaned_data.get('current_password')

        if not new_password:
            raise ValidationError("New password is required")

        if current_password and new_password == current_password:
            raise ValidationError("New password must be different from current password")

        try:
            validate_password(new_password)
        except forms.ValidationError as exc:
            raise ValidationError(exc.messages)

        return new_password

    def clean(self):
        """Confirmation is optional, but must match when given"""
        cleaned_data = super().clean()
        new_password = cleaned_data.get('new_password')
        confirm_password = cleaned_data.get('confirm_password')

        if new_password and confirm_password and new_password != confirm_password:
            raise ValidationError("New password and confirmation password do not match")

        return cleaned_data


class ProfileSerializer(forms.Form):
    name = forms.CharField(max_length=100, strip=True, required=True,
                           error_messages={'required': 'Name is required.'})
    email = forms.CharField(max_length=254, strip=True, required=True,
                            error_messages={'required': 'Email is required.'})

    def clean_name(self):
        return validate_name(self.cleaned_data.get('name'))

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))


class ThemeSerializer(forms.Form):
    theme = forms.ChoiceField(
        choices=[(theme, theme.title()) for theme in THEMES],
        error_messages={'invalid_choice': 'Invalid theme', 'required': 'Invalid theme'}
    )


class ProfilePictureSerializer(serializers.Serializer):
    filename = serializers.CharField(max_length=255)
    content_type = serializers.CharField(max_length=100)
    size = serializers.IntegerField(min_value=0)

    def validate_content_type(self, value):
        if not value.lower().startswith("image/"):
            raise serializers.ValidationError("File must be an image")
        return value

    def validate_size(self, value):
        if value > settings.PROFILE_PICTURE_MAX_BYTES:
            limit_mb = settings.PROFILE_PICTURE_MAX_BYTES // (1024 * 1024)
            raise serializers.ValidationError(f"Image file size must not exceed {limit_mb}MB")
        return value


class ApiKeysSerializer(serializers.Serializer):
    """Provider -> raw key. Unknown providers are rejected."""

    apiKeys = serializers.DictField(child=serializers.CharField(allow_blank=True, trim_whitespace=False))

    def validate_apiKeys(self, value):
        unknown = sorted(set(value) - set(API_KEY_PROVIDERS))
        if unknown:
            raise serializers.ValidationError(f"Unknown providers: {', '.join(unknown)}")
        return dict(value)
