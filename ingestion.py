"""Streaming ingestion of a top-level JSON array of user records.

Elements are decoded one at a time with ijson, so the upload is never held
in memory as a whole.

Element failure policy: skip and continue. A bad element is logged and
counted, and the remaining elements are still ingested. Records stored before
a structural failure (for example an unterminated array) are kept; there is
no rollback.
"""

import logging
from dataclasses import dataclass

import ijson
from ijson.common import JSONError, ObjectBuilder

from errors import MalformedInput, RecordDecodeError

logger = logging.getLogger(__name__)

ELEMENT_PREFIX = "item"
CONTAINER_START = ("start_map", "start_array")
CONTAINER_END = ("end_map", "end_array")


def describe_error(exc):
    """Readable message for a parser error; the C backend reports bytes."""
    message = exc.args[0] if exc.args else exc
    if isinstance(message, bytes):
        return message.decode("utf-8", errors="replace").strip()
    return str(message)


@dataclass(frozen=True)
class IngestionResult:
    record_count: int  # store size after ingestion, duplicates overwritten
    accepted: int
    skipped: int


class IngestionPipeline:
    def __init__(self, store, validator):
        self._store = store
        self._validator = validator

    def ingest(self, stream):
        """Decode ``stream`` (a binary file-like object) into the store.

        Raises:
            MalformedInput: empty stream, non-array root, invalid JSON, or a
                missing closing bracket.
        """
        events = ijson.parse(stream, use_float=True)

        try:
            _, event, _ = next(events)
        except StopIteration:
            raise MalformedInput("Uploaded file is empty")
        except (JSONError, UnicodeDecodeError) as exc:
            raise MalformedInput("Could not read the start of the JSON array", describe_error(exc))

        if event != "start_array":
            raise MalformedInput(
                "The user array was not opened correctly",
                f"expected '[' at the root, got {event}",
            )

        accepted = 0
        skipped = 0
        with self._store.batch():
            try:
                for index, element in enumerate(self._elements(events)):
                    try:
                        record = self._validator.decode(element, index=index)
                    except RecordDecodeError as exc:
                        skipped += 1
                        logger.warning("Skipping user at index %d: %s (%s)", index, exc.message, exc.detail)
                        continue
                    self._store.put(record)
                    accepted += 1
            except MalformedInput as exc:
                logger.error("Ingestion aborted after %d accepted users: %s", accepted, exc.message)
                raise
            except (JSONError, UnicodeDecodeError) as exc:
                logger.error("Ingestion aborted after %d accepted users: %s", accepted, describe_error(exc))
                raise MalformedInput("Could not read the JSON array", describe_error(exc))

            record_count = len(self._store)

        logger.info(
            "Ingested %d users (%d skipped), store now holds %d",
            accepted, skipped, record_count,
        )
        return IngestionResult(record_count=record_count, accepted=accepted, skipped=skipped)

    @staticmethod
    def _elements(events):
        """Yield each root-array element as a Python value.

        Expects the root ``start_array`` event to be consumed already. Raises
        MalformedInput if the array is never closed or is followed by more data.
        """
        builder = None
        depth = 0

        for prefix, event, value in events:
            if prefix == "" and event == "end_array":
                break

            if builder is None:
                builder = ObjectBuilder()
            builder.event(event, value)

            if prefix == ELEMENT_PREFIX and event in CONTAINER_START:
                depth += 1
            elif prefix == ELEMENT_PREFIX and event in CONTAINER_END:
                depth -= 1

            if depth == 0:
                yield builder.value
                builder = None
        else:
            raise MalformedInput("The user array was not closed correctly", "missing ']'")

        for prefix, event, _ in events:
            raise MalformedInput(
                "Unexpected content after the user array",
                f"got {event} at '{prefix}'",
            )
