from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict

from client_crud.models.client import Client

class ClientBase(BaseModel):
    name:    Optional[str] = None
    email:   str
    phone:   Optional[str] = None
    address: Optional[str] = None
    city:    Optional[str] = None

class ClientRequest(ClientBase):
    # id absent -> création, id présent -> mise à jour (upsert)
    id: Optional[int] = None

    def to_entity(self) -> Client:
        return Client(**self.model_dump())

class ClientResponse(ClientBase):
    id: int

    model_config = ConfigDict(from_attributes=True)
