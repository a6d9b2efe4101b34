"""
Minion / device expansion.

One template ("objects") describes the groups of a single sub-device. With a
device list, each device gets its own deep copy of the template under its
own source key; with a matching minion-id list, the placeholder in every
member address is replaced by that device's minion id:

    objects: 1.3.6.1.4.1.x.1   devices [pdu1, pdu2]   minions [5, 7]
    ->  pdu1: 1.3.6.1.4.1.5.1
        pdu2: 1.3.6.1.4.1.7.1
"""
from __future__ import annotations

import logging
from typing import Optional

from gapit.core.errors import ConfigError
from gapit.schemas.gapit_code import GapitCode, clone_gapit_code

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER = "x"
DEFAULT_TEMPLATE_KEY = "objects"


def expand_minions(
    gapit_code: GapitCode,
    device_names: list[str],
    minion_ids: Optional[list[str]] = None,
    placeholder: str = DEFAULT_PLACEHOLDER,
    template_key: str = DEFAULT_TEMPLATE_KEY,
) -> GapitCode:
    """
    Return an expanded copy of ``gapit_code``; the input is not modified.

    Raises:
        ConfigError: minion ids given and their count differs from the
            device count, or the template key is missing.
    """
    minion_ids = minion_ids or []
    if minion_ids and len(minion_ids) != len(device_names):
        raise ConfigError(
            f"{len(device_names)} device names but {len(minion_ids)} minion ids"
        )

    tree = clone_gapit_code(gapit_code)
    if not device_names:
        return tree
    if template_key not in tree:
        raise ConfigError(f"template key '{template_key}' not found in gapit_code")

    template = {template_key: tree[template_key]}
    for idx, device in enumerate(device_names):
        groups = clone_gapit_code(template)[template_key]
        if minion_ids:
            minion_id = minion_ids[idx]
            for group in groups:
                for member in group.group:
                    member.address = member.address.replace(placeholder, minion_id, 1)
            logger.debug("Expanded '%s' for device '%s' (minion %s)", template_key, device, minion_id)
        else:
            logger.debug("Copied '%s' for device '%s'", template_key, device)
        tree[device] = groups

    if len(tree) > 1 and template_key not in device_names:
        del tree[template_key]
    return tree
