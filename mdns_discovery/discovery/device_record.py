"""Defines the DeviceRecord wire-ready device description."""

import dataclasses
from typing import Dict


@dataclasses.dataclass
class DeviceRecord:
    """A discovered device as reported to the agent.

    Attributes:
        id: Instance name of the mDNS service backing this device.
        properties: Flat mapping of property key to string value.
    """

    id: str
    properties: Dict[str, str] = dataclasses.field(default_factory=dict)
