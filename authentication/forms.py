# authentication/forms.py
from django import forms

from authentication.validators import validate_email_address, validate_name, validate_password

RESET_PASSWORD_MIN_LENGTH = 8


def _email_field():
    return forms.CharField(
        max_length=254,
        strip=True,
        required=True,
        error_messages={
            'required': 'Email is required.',
            'max_length': 'Email must be 254 characters or less.'
        }
    )


def _password_field(label='Password'):
    return forms.CharField(
        max_length=255,
        strip=False,
        required=True,
        error_messages={
            'required': f'{label} is required.',
            'max_length': f'{label} must be 255 characters or less.'
        }
    )


def _code_field():
    return forms.CharField(
        max_length=12,
        strip=True,
        required=True,
        error_messages={'required': 'Token is required.'}
    )


class SignupForm(forms.Form):
    name = forms.CharField(
        max_length=100,
        strip=True,
        required=True,
        error_messages={
            'required': 'Name is required.',
            'max_length': 'Name must be 100 characters or less.'
        }
    )
    email = _email_field()
    password = _password_field()

    def clean_name(self):
        return validate_name(self.cleaned_data.get('name'))

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))

    def clean_password(self):
        return validate_password(self.cleaned_data.get('password'))


class LoginForm(forms.Form):
    email = _email_field()
    password = _password_field()

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))

    def clean_password(self):
        # Only checked against the stored hash, strength rules do not apply
        password = self.cleaned_data.get('password')
        if not password:
            raise forms.ValidationError('Password is required.')
        return password


class VerifyEmailForm(forms.Form):
    email = _email_field()
    token = _code_field()

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))


class PasswordResetRequestForm(forms.Form):
    email = _email_field()

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))


class ResetPasswordForm(forms.Form):
    email = _email_field()
    token = _code_field()
    new_password = _password_field('New password')

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))

    def clean_new_password(self):
        return validate_password(self.cleaned_data.get('new_password'), RESET_PASSWORD_MIN_LENGTH)
