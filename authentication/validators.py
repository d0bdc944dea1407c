from django import forms
import re

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def validate_name(name: str):
    if not name or not name.strip():
        raise forms.ValidationError("Name is required.")

    name = name.strip()
    if len(name) < 2:
        raise forms.ValidationError("Name must be at least 2 characters long.")
    if len(name) > 100:
        raise forms.ValidationError("Name must be 100 characters or less.")
    if re.search(r'[<>"/\\]', name):
        raise forms.ValidationError('Name cannot contain <, >, ", /, or \\ characters.')

    return name


def validate_email_address(email: str):
    if not email or not email.strip():
        raise forms.ValidationError("Email is required.")

    email = email.lower().strip()
    if not EMAIL_PATTERN.match(email):
        raise forms.ValidationError("Please enter a valid email address.")

    return email


def validate_password(password: str, min_length: int = 6):

    if not password:
        raise forms.ValidationError("Password cannot be empty.")
    if len(password) < min_length:
        raise forms.ValidationError(f"Password must be at least {min_length} characters long.")

    return password
