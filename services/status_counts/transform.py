"""
Status-code transform - parses each JSON record, extracts its "response" field,
and emits {"status_code": "<value>", "count": 1}.

Every input record maps to exactly one output record. Nothing is aggregated:
"count" is always 1, never a running total.
"""
import json
import logging
from enum import Enum

from pyflink.common.typeinfo import Types
from pyflink.datastream.functions import FlatMapFunction, MapFunction

from shared.config import PROPERTY_KEYS
from shared.errors import ConfigurationError, MalformedRecordError

logger = logging.getLogger(__name__)

RESPONSE_FIELD = "response"


class MalformedRecordPolicy(Enum):
    """What the transform does with a record it cannot parse."""

    FAIL = "FAIL"
    SKIP = "SKIP"

    @classmethod
    def parse(cls, value: str) -> "MalformedRecordPolicy":
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            raise ConfigurationError(
                f"Unsupported {PROPERTY_KEYS['malformed_records']} {value!r}, "
                f"expected one of {[m.value for m in cls]}",
                context={"value": value},
            ) from None


def _as_text(value) -> str:
    # Scalars keep their JSON text, containers have none
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def extract_status_code(payload: str) -> tuple:
    """
    Parse a record and pair its response value with a count of 1.

    Args:
        payload: JSON text of one input record

    Returns:
        (status_code, 1) with the status code as a string

    Raises:
        MalformedRecordError: if the payload is not a JSON object with a
            "response" field
    """
    try:
        document = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(
            "Record is not valid JSON", cause=e, context={"payload": payload}
        ) from e

    if not isinstance(document, dict) or RESPONSE_FIELD not in document:
        raise MalformedRecordError(
            f"Record has no {RESPONSE_FIELD!r} field", context={"payload": payload}
        )

    return _as_text(document[RESPONSE_FIELD]), 1


def format_status_count(pair) -> str:
    """Serialize a (status_code, count) pair as an output record."""
    status_code, count = pair
    record = json.dumps(
        {"status_code": status_code, "count": count},
        separators=(", ", ":"),
        ensure_ascii=False,
    )
    # Lone surrogates cannot be encoded as UTF-8; they are written as "?"
    return record.encode("utf-8", "replace").decode("utf-8")


class ExtractStatusCode(FlatMapFunction):

    def __init__(self, policy: MalformedRecordPolicy = MalformedRecordPolicy.FAIL):
        self.policy = policy

    def flat_map(self, value):
        try:
            pair = extract_status_code(value)
        except MalformedRecordError as e:
            if self.policy is MalformedRecordPolicy.FAIL:
                raise
            logger.warning(f"Skipping malformed record: {e}")
            return
        yield pair


class FormatStatusCount(MapFunction):

    def map(self, value):
        return format_status_count(value)


def count_status_codes(stream, policy: MalformedRecordPolicy = MalformedRecordPolicy.FAIL):
    """Attach the transform to a stream of JSON strings."""
    pairs = stream.flat_map(
        ExtractStatusCode(policy),
        output_type=Types.TUPLE([Types.STRING(), Types.INT()]),
    )
    return pairs.map(FormatStatusCount(), output_type=Types.STRING())
