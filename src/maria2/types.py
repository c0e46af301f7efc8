"""Result types for aria2 RPC calls.

aria2 encodes numbers as strings; the models keep them that way and
expose the camelCase wire names as snake_case attributes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Aria2Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class VersionInfo(Aria2Model):
    """Result of aria2.getVersion."""

    version: str
    enabled_features: list[str] = Field(default_factory=list)


class SessionInfo(Aria2Model):
    """Result of aria2.getSessionInfo."""

    session_id: str


class GlobalStat(Aria2Model):
    """Result of aria2.getGlobalStat."""

    download_speed: str = "0"
    upload_speed: str = "0"
    num_active: str = "0"
    num_waiting: str = "0"
    num_stopped: str = "0"
    num_stopped_total: str = "0"


class MulticallItem(Aria2Model):
    """One sub-call of system.multicall."""

    method_name: str
    params: list[Any] = Field(default_factory=list)
