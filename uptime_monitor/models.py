# models.py
# Wire payloads, per-tick records and API responses

from datetime import datetime
from decimal import Decimal
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

WIRE_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class DelegatorRecord(BaseModel):
    stake_amount: Decimal = Field(..., alias="stakeAmount")

    model_config = WIRE_CONFIG


class RawValidatorRecord(BaseModel):
    """
    One validator as reported by one node for one tick.

    Numeric fields arrive as decimal strings. Stake amounts are in the base unit
    and need normalize_stake() before they are exported.
    """
    node_id: str = Field(..., alias="nodeID")
    stake_amount: Decimal = Field(..., alias="stakeAmount")
    uptime: Decimal
    connected: bool
    start_time: int = Field(..., alias="startTime", description="unix seconds")
    end_time: int = Field(..., alias="endTime", description="unix seconds")
    delegators: List[DelegatorRecord] = Field(default_factory=list)

    model_config = WIRE_CONFIG

    @field_validator("delegators", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v


class Unavailable(BaseModel):
    """The source could not be queried this tick."""
    reason: str = ""

    model_config = ConfigDict(frozen=True)


class Records(BaseModel):
    records: List[RawValidatorRecord]

    model_config = ConfigDict(frozen=True)


SourceOutcome = Union[Unavailable, Records]


class ReconciledRecord(BaseModel):
    node_id: str
    connected: bool
    uptime: float
    stake: float
    delegation_stake: float
    start_time: int  # unix seconds
    end_time: int  # unix seconds

    model_config = ConfigDict(frozen=True)

    @property
    def start_time_ms(self) -> int:
        return self.start_time * 1000

    @property
    def end_time_ms(self) -> int:
        return self.end_time * 1000


class WatchedNode(BaseModel):
    node_id: str
    name: str = ""
    start_time: int = 0  # unix seconds
    end_time: int = 0  # unix seconds
    stake: float = 0.0
    delegation_stake: float = 0.0

    def apply(self, record: ReconciledRecord) -> bool:
        """Copy tracked fields from a reconciled record. Returns True if anything changed."""
        changed = False
        for field in ("start_time", "end_time", "stake", "delegation_stake"):
            value = getattr(record, field)
            if getattr(self, field) != value:
                setattr(self, field, value)
                changed = True
        return changed

    @classmethod
    def from_record(cls, record: ReconciledRecord, name: str = "") -> "WatchedNode":
        return cls(
            node_id=record.node_id,
            name=name,
            start_time=record.start_time,
            end_time=record.end_time,
            stake=record.stake,
            delegation_stake=record.delegation_stake,
        )


class ValidatorNodeItem(BaseModel):
    """Entry of the validators seed file and of the refresh endpoint payload."""
    node_id: str = Field(..., alias="nodeId")
    name: str = ""
    start_time: int = Field(0, alias="startTime")
    end_time: int = Field(0, alias="endTime")

    model_config = WIRE_CONFIG

    @field_validator("name", mode="before")
    @classmethod
    def none_as_blank(cls, v):
        return v or ""

    def to_watched_node(self) -> WatchedNode:
        return WatchedNode(
            node_id=self.node_id,
            name=self.name,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class UptimeResponse(BaseModel):
    uptime: float = Field(..., description="Average connectivity over the interval (0..1)")


class ConnectedResponse(BaseModel):
    connected: bool


class ValidatorInfoResponse(BaseModel):
    node_id: str = Field(..., alias="nodeID")
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    uptime: float

    model_config = ConfigDict(populate_by_name=True)
