"""
Task id encoding.

A task id is ``0x`` followed by the submission instant as 12 hex digits of
epoch milliseconds, then an opaque hex suffix chosen by the executor. Status
lookups recover the submission instant from the id alone.
"""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..errors import InvalidInputError
from ..utils.time import from_epoch_ms, to_epoch_ms

TASK_ID_PREFIX = "0x"
INSTANT_HEX_DIGITS = 12
MIN_SUFFIX_HEX_DIGITS = 8
MAX_SUFFIX_HEX_DIGITS = 64

_TASK_ID_RE = re.compile(
    r"^0x(?P<instant>[0-9a-fA-F]{%d})(?P<suffix>[0-9a-fA-F]{%d,%d})$"
    % (INSTANT_HEX_DIGITS, MIN_SUFFIX_HEX_DIGITS, MAX_SUFFIX_HEX_DIGITS)
)
_SUFFIX_RE = re.compile(r"^[0-9a-fA-F]{%d,%d}$" % (MIN_SUFFIX_HEX_DIGITS, MAX_SUFFIX_HEX_DIGITS))


@dataclass(frozen=True)
class DecodedTaskId:
    submitted_at: datetime
    suffix: str


def encode_task_id(submitted_at: datetime, suffix: Optional[str] = None) -> str:
    """
    Build a task id for a submission instant.

    Args:
        submitted_at: Submission instant
        suffix: Opaque hex suffix; random 8 hex digits when omitted

    Raises:
        InvalidInputError: Instant not representable or suffix not hex
    """
    epoch_ms = to_epoch_ms(submitted_at)
    if epoch_ms < 0 or epoch_ms >= 16 ** INSTANT_HEX_DIGITS:
        raise InvalidInputError("Submission instant out of range", field="submitted_at", value=submitted_at)

    if suffix is None:
        suffix = secrets.token_hex(MIN_SUFFIX_HEX_DIGITS // 2)
    if not _SUFFIX_RE.match(suffix):
        raise InvalidInputError("Task id suffix must be 8-64 hex digits", field="suffix", value=suffix)

    return f"{TASK_ID_PREFIX}{epoch_ms:0{INSTANT_HEX_DIGITS}x}{suffix.lower()}"


def decode_task_id(task_id: Any) -> DecodedTaskId:
    """
    Recover the submission instant and suffix from a task id.

    Raises:
        InvalidInputError: The id does not have the expected shape or its
            instant is not a valid datetime
    """
    if not isinstance(task_id, str):
        raise InvalidInputError("Invalid task ID", field="task_id", value=task_id)

    match = _TASK_ID_RE.match(task_id)
    if match is None:
        raise InvalidInputError("Invalid task ID", field="task_id", value=task_id)

    try:
        submitted_at = from_epoch_ms(int(match.group("instant"), 16))
    except ValueError as e:
        raise InvalidInputError("Invalid task ID", field="task_id", value=task_id) from e

    return DecodedTaskId(submitted_at=submitted_at, suffix=match.group("suffix").lower())


def is_valid_task_id(task_id: Any) -> bool:
    try:
        decode_task_id(task_id)
    except InvalidInputError:
        return False
    return True
