import json
import os
from collections import defaultdict

import jsonschema

from errors import RecordDecodeError
from models import UserRecord

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class RecordValidator:
    """Validates raw user record elements against a JSON schema and decodes them."""

    def __init__(self, schema_path):
        if not os.path.isabs(schema_path):
            schema_path = os.path.join(BASE_DIR, schema_path)
        with open(schema_path, "r") as f:
            schema = json.load(f)

        self._validator = jsonschema.Draft202012Validator(schema)
        self._stats = self._empty_stats()

    @staticmethod
    def _empty_stats():
        return {
            "total": 0,
            "valid": 0,
            "invalid": 0,
            "error_types": defaultdict(int),
        }

    def validate(self, element):
        """Validate a raw element against the schema.

        Returns:
            tuple: (is_valid: bool, errors: list[str])
        """
        self._stats["total"] += 1
        errors = list(self._validator.iter_errors(element))

        if not errors:
            self._stats["valid"] += 1
            return True, []

        self._stats["invalid"] += 1
        error_messages = []
        for error in errors:
            self._stats["error_types"][error.validator] += 1
            path = "/".join(str(p) for p in error.absolute_path)
            error_messages.append(f"{path}: {error.message}" if path else error.message)

        return False, error_messages

    def decode(self, element, index=None):
        """Validate and convert one element into a UserRecord.

        Raises:
            RecordDecodeError: schema violation, bad UUID or bad calendar date.
        """
        is_valid, errors = self.validate(element)
        if not is_valid:
            raise RecordDecodeError(
                f"Record at index {index} does not match the user schema",
                "; ".join(errors),
                index=index,
            )

        try:
            return UserRecord.from_dict(element)
        except ValueError as exc:
            # schema passed, so the only conversion failures left are id and dates
            self._stats["valid"] -= 1
            self._stats["invalid"] += 1
            self._stats["error_types"]["conversion"] += 1
            raise RecordDecodeError(
                f"Record at index {index} has an invalid identifier or date",
                str(exc),
                index=index,
            ) from exc

    def get_stats(self):
        """Return a copy of the stats dict."""
        stats = dict(self._stats)
        stats["error_types"] = dict(stats["error_types"])
        return stats
