import secrets
import string
from datetime import timedelta

from datastore.access import utcnow


def generate_otp(length=6):
    """Random 6 digit numeric OTP"""
    return ''.join(secrets.choice(string.digits) for _ in range(length))


def expires_in(*, minutes=0, days=0):
    return utcnow() + timedelta(minutes=minutes, days=days)
