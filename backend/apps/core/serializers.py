"""
Input serializer helpers shared by the service layer.

Services validate their input with DRF serializers and raise
AppValidationError carrying every violation, flattened the same way the
exception handler flattens DRF errors.
"""

from rest_framework import serializers

from .exception_handler import flatten_errors
from .exceptions import AppValidationError


class InputSerializer(serializers.Serializer):
    """
    Base for service input serializers.

    ``only_present=True`` drops the fields missing from ``data`` instead of
    using DRF's ``partial`` mode, so nested serializers still enforce their
    own required fields and absent fields never pick up defaults.
    """

    def __init__(self, *args, only_present=False, **kwargs):
        super().__init__(*args, **kwargs)
        data = kwargs.get("data")
        if only_present and hasattr(data, "keys"):
            for field_name in set(self.fields) - set(data.keys()):
                self.fields.pop(field_name)


def validate_input(serializer_class, data, partial=False, context=None) -> dict:
    """Run ``serializer_class`` over ``data`` and return the validated values."""
    serializer = serializer_class(data=data, only_present=partial, context=context or {})
    if not serializer.is_valid():
        raise AppValidationError(detail=flatten_errors(serializer.errors))
    return dict(serializer.validated_data)
