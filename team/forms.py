from django import forms

from authentication.documents import ROLE_USER, ROLES
from authentication.validators import validate_email_address, validate_name, validate_password

ROLE_CHOICES = [(role, role.title()) for role in ROLES]


class InviteMemberForm(forms.Form):
    email = forms.CharField(
        max_length=254,
        strip=True,
        required=True,
        error_messages={'required': 'Email is required.'}
    )
    role = forms.ChoiceField(
        choices=ROLE_CHOICES,
        required=False,
        error_messages={'invalid_choice': 'Invalid user role.'}
    )

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))

    def clean_role(self):
        return self.cleaned_data.get('role') or ROLE_USER


class AcceptInvitationForm(forms.Form):
    token = forms.CharField(max_length=32, strip=True, required=True,
                            error_messages={'required': 'Token is required.'})
    email = forms.CharField(max_length=254, strip=True, required=True,
                            error_messages={'required': 'Email is required.'})
    name = forms.CharField(max_length=100, strip=True, required=True,
                           error_messages={'required': 'Name is required.'})
    password = forms.CharField(max_length=255, strip=False, required=True,
                               error_messages={'required': 'Password is required.'})

    def clean_email(self):
        return validate_email_address(self.cleaned_data.get('email'))

    def clean_name(self):
        return validate_name(self.cleaned_data.get('name'))

    def clean_password(self):
        return validate_password(self.cleaned_data.get('password'))


class MemberPermissionsForm(forms.Form):
    """Only these two fields may be changed on a member."""

    EDITABLE_FIELDS = ('role', 'isActive')

    role = forms.ChoiceField(
        choices=ROLE_CHOICES,
        required=False,
        error_messages={'invalid_choice': 'Invalid user role.'}
    )
    isActive = forms.NullBooleanField(required=False)

    def clean_role(self):
        role = self.cleaned_data.get('role')
        if 'role' in self.data and not role:
            raise forms.ValidationError('Invalid user role.')
        return role

    def clean(self):
        cleaned_data = super().clean()
        unknown = sorted(set(self.data) - set(self.EDITABLE_FIELDS))
        if unknown:
            raise forms.ValidationError(f"These fields cannot be changed: {', '.join(unknown)}")
        return {
            key: cleaned_data[key]
            for key in self.EDITABLE_FIELDS
            if key in self.data and cleaned_data.get(key) is not None
        }
