"""
Measurement Transformer.

Flattens a result tree into time-series records, one per group that has at
least one value:

    measurement = group_name
    tags        = db_tags + {tagname_device_name: source_key} + custom_tags[source_key]
    fields      = {description: value} for members with a value
    timestamp   = from the inbound message when configured, else omitted
"""
from __future__ import annotations

import logging
import math
from typing import Any, Optional, Union

from gapit.core.errors import ConfigError
from gapit.schemas.gapit_code import GapitCode
from gapit.schemas.measurement import Measurement
from gapit.schemas.node import PollRequest

logger = logging.getLogger(__name__)


def _as_number(value: Any) -> Optional[Union[int, float]]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def resolve_timestamp(
    request: PollRequest,
    use_timestamp_from_msg: bool,
    timestamp_property: str,
) -> Optional[Union[int, float]]:
    """
    Timestamp for this cycle's measurements, or None for sink time.

    Raises:
        ConfigError: explicit timestamping is on but the property is not
            configured, missing from the message, or not a number.
    """
    if not use_timestamp_from_msg:
        logger.debug("Not sending timestamp with data (sink will use its current time)")
        return None
    if not timestamp_property:
        raise ConfigError(
            "Node is configured to use timestamp from message, "
            "but the timestamp property is not configured."
        )
    raw = request.get_property(timestamp_property)
    if raw is None:
        raise ConfigError(
            f"Node is configured to use timestamp from message[{timestamp_property}], "
            "but the property is not set."
        )
    number = _as_number(raw)
    if number is None:
        raise ConfigError(
            f"Node is configured to use timestamp from message[{timestamp_property}], "
            f"but this property is not set to a number (value: {raw!r})."
        )
    return number


def build_measurements(
    gapit_results: GapitCode,
    db_tags: dict[str, str],
    tagname_device_name: str,
    custom_tags: dict[str, dict[str, Any]],
    timestamp: Optional[Union[int, float]] = None,
) -> list[Measurement]:
    """One measurement per group with values, in tree order."""
    payload: list[Measurement] = []
    for source_key, groups in gapit_results.items():
        for group in groups:
            if not group.has_values():
                continue
            fields = {
                m.description: m.value for m in group.group if m.has_value
            }
            tags = {k: str(v) for k, v in db_tags.items()}
            tags[tagname_device_name] = source_key
            for tag_key, tag_val in custom_tags.get(source_key, {}).items():
                logger.debug("Adding custom tag %s: %s to '%s'", tag_key, tag_val, source_key)
                tags[tag_key] = str(tag_val)
            payload.append(
                Measurement(
                    measurement=group.group_name,
                    tags=tags,
                    fields=fields,
                    timestamp=timestamp,
                ),
            )
    return payload
