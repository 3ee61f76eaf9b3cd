"""Forms for the registration app."""

from collections.abc import Mapping

from django import forms

from django_event_registration.registration.session import AttendeeInfo


class AttendeeInfoForm(forms.Form):
    """Personal details collected on the attendee step.

    Required text fields are stripped before validation, so a value made of
    whitespace only counts as missing. Dietary restrictions and special
    requirements are free text and always accepted.
    """

    first_name = forms.CharField(strip=True)
    last_name = forms.CharField(strip=True)
    email = forms.EmailField()
    phone = forms.CharField(strip=True)
    organization = forms.CharField(strip=True)
    dietary_restrictions = forms.CharField(widget=forms.Textarea, required=False, strip=False)
    special_requirements = forms.CharField(widget=forms.Textarea, required=False, strip=False)


def _bound_form(info: AttendeeInfo | Mapping[str, str]) -> AttendeeInfoForm:
    data = info.as_dict() if isinstance(info, AttendeeInfo) else dict(info)
    return AttendeeInfoForm(data=data)


def validate_attendee_info(info: AttendeeInfo | Mapping[str, str]) -> frozenset[str]:
    """Return the names of the attendee fields that are invalid.

    An empty set means every field is valid. The check has no side effects
    and depends only on ``info``.

    Args:
        info: The attendee record, or a mapping with the same field names.

    Returns:
        The invalid field names, e.g. ``frozenset({"email"})``.
    """
    form = _bound_form(info)
    return frozenset(name for name in form.errors if name in AttendeeInfo.FIELD_NAMES)


def attendee_errors(info: AttendeeInfo | Mapping[str, str]) -> dict[str, list[str]]:
    """Return the per-field error messages for rendering next to the inputs."""
    form = _bound_form(info)
    return {name: [str(message) for message in messages] for name, messages in form.errors.items()}
