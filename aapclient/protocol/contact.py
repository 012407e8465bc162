"""Contact configuration bundles understood by the ud3tn config agent."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

# Data rate the node treats as unlimited
UNLIMITED_DATA_RATE = 4294967200


def _timestamp(dt: datetime) -> int:
    return int(dt.timestamp())


def _eid_list(eids: List[str]) -> str:
    return ','.join(f"({eid})" for eid in eids)


@dataclass(frozen=True)
class ContactDataRate:
    """Expected transmission rate of a contact, None meaning unlimited."""
    bytes_per_second: Optional[int] = None

    def __post_init__(self):
        if self.bytes_per_second is not None and self.bytes_per_second < 0:
            raise ValueError(f"Data rate must be positive, got {self.bytes_per_second}")

    @classmethod
    def unlimited(cls) -> 'ContactDataRate':
        return cls(None)

    @classmethod
    def limited(cls, bytes_per_second: int) -> 'ContactDataRate':
        return cls(bytes_per_second)

    @property
    def is_unlimited(self) -> bool:
        return self.bytes_per_second is None

    def to_string(self) -> str:
        if self.is_unlimited:
            return str(UNLIMITED_DATA_RATE)
        return str(self.bytes_per_second)


@dataclass
class Contact:
    """A time window during which a node is reachable."""
    start: datetime
    end: datetime
    data_rate: ContactDataRate = field(default_factory=ContactDataRate.unlimited)
    reaches_eid: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError("Contact must end after it starts")

    @classmethod
    def from_now_during(cls,
                        duration: timedelta,
                        data_rate: Optional[ContactDataRate] = None,
                        reaches_eid: Optional[List[str]] = None) -> 'Contact':
        """
        Create a contact starting now.

        Args:
            duration: How long the contact lasts
            data_rate: Expected rate (unlimited if None)
            reaches_eid: EIDs reachable through this contact

        Returns:
            New Contact instance
        """
        start = datetime.now(timezone.utc)
        return cls(
            start=start,
            end=start + duration,
            data_rate=data_rate or ContactDataRate.unlimited(),
            reaches_eid=list(reaches_eid or [])
        )

    def to_string(self) -> str:
        return "{{{},{},{},[{}]}}".format(
            _timestamp(self.start),
            _timestamp(self.end),
            self.data_rate.to_string(),
            _eid_list(self.reaches_eid)
        )


class ConfigBundle:
    """Base class for config agent commands."""
    command: int = None

    def to_string(self) -> str:
        """Serialize the command."""
        raise NotImplementedError

    def to_bytes(self) -> bytes:
        return self.to_string().encode('utf-8')


def _validate_reliability(reliability: Optional[int]):
    # Expected likelihood of future contacts, in units of 1/10000
    if reliability is not None and not 100 <= reliability <= 1000:
        raise ValueError(f"Reliability must be 100-1000, got {reliability}")


def _contact_command(command: int,
                     eid: str,
                     reliability: Optional[int],
                     cla_address: Optional[str],
                     reaches_eid: List[str],
                     contacts: List[Contact]) -> str:
    result = f"{command}({eid})"

    if reliability is not None:
        result += f",{reliability}"

    result += f":({cla_address})" if cla_address is not None else ":"

    if reaches_eid:
        result += f":[{_eid_list(reaches_eid)}]"
    else:
        result += ":"

    if contacts:
        result += ":[{}]".format(','.join(c.to_string() for c in contacts))

    return result + ";"


@dataclass
class AddContact(ConfigBundle):
    """Add a new contact to the node."""
    eid: str
    cla_address: str
    reliability: Optional[int] = None
    reaches_eid: List[str] = field(default_factory=list)
    contacts: List[Contact] = field(default_factory=list)

    command = 1

    def __post_init__(self):
        _validate_reliability(self.reliability)

    def to_string(self) -> str:
        return _contact_command(self.command, self.eid, self.reliability,
                                self.cla_address, self.reaches_eid, self.contacts)


@dataclass
class ReplaceContact(ConfigBundle):
    """Replace an existing contact, optionally keeping its CLA address."""
    eid: str
    cla_address: Optional[str] = None
    reliability: Optional[int] = None
    reaches_eid: List[str] = field(default_factory=list)
    contacts: List[Contact] = field(default_factory=list)

    command = 2

    def __post_init__(self):
        _validate_reliability(self.reliability)

    def to_string(self) -> str:
        return _contact_command(self.command, self.eid, self.reliability,
                                self.cla_address, self.reaches_eid, self.contacts)


@dataclass
class DeleteContact(ConfigBundle):
    """Remove a contact from the node."""
    eid: str

    command = 3

    def to_string(self) -> str:
        return f"{self.command}({self.eid});"
