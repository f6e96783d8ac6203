from __future__ import annotations

from typing import Any, Dict

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict


def request_payload() -> Dict[str, Any]:
    """Return the JSON body of the request, or its form fields."""

    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form.to_dict()


def payload_formdata() -> ImmutableMultiDict:
    """Wrap the request payload so JSON posts validate through WTForms too.

    WTForms expects form-encoded strings, so JSON scalars are stringified and
    nulls dropped.
    """

    fields = {}
    for key, value in request_payload().items():
        if value is not None:
            fields[key] = value if isinstance(value, str) else str(value)
    return ImmutableMultiDict(fields)


def form_error_message(form: FlaskForm) -> str:
    messages = []
    for name, errors in form.errors.items():
        label = form[name].label.text if name in form else name
        messages.append(f"{label}: {' '.join(str(error) for error in errors)}")
    return "; ".join(messages)
