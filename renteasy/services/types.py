from enum import Enum
from typing import List

from pydantic import BaseModel


class ServerStatus(str, Enum):
    AVAILABLE = "Available"
    DOWN = "Down"


class StatusOutput(BaseModel):
    status: ServerStatus


class Heartbeat(BaseModel):
    status: ServerStatus
    server_id: str
    message: str


class EndpointsOutput(BaseModel):
    endpoints: List[str]
