# client_crud/repositories/client.py
from __future__ import annotations
import logging
from typing import Optional, Protocol
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from client_crud.models.client import Client

logger = logging.getLogger(__name__)


class ClientStore(Protocol):
    """Contrat de persistance dont dépend ClientService."""

    def find_all(self) -> list[Client]: ...

    def find_by_id(self, client_id: int) -> Optional[Client]: ...

    def find_by_email(self, email: str) -> Optional[Client]: ...

    def save(self, client: Client) -> Client: ...

    def delete_by_id(self, client_id: int) -> None: ...


class ClientRepository:
    """Implémentation SQLAlchemy de ClientStore (une session par requête)."""

    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> list[Client]:
        rows = list(self.db.scalars(select(Client).order_by(Client.id)))
        logger.debug("clients listed", extra={"count": len(rows)})
        return rows

    def find_by_id(self, client_id: int) -> Optional[Client]:
        client = self.db.get(Client, client_id)
        if client:
            logger.debug("client retrieved", extra={"client_id": client_id})
        else:
            logger.debug("client not found", extra={"client_id": client_id})
        return client

    def find_by_email(self, email: str) -> Optional[Client]:
        return self.db.scalars(select(Client).where(Client.email == email)).first()

    def save(self, client: Client) -> Client:
        try:
            if client.id is None:
                self.db.add(client)
                saved = client
            else:
                # upsert par id: met à jour la ligne existante ou l'insère
                saved = self.db.merge(client)
            self.db.commit()
            self.db.refresh(saved)
            logger.info("client saved", extra={"client_id": saved.id, "email": saved.email})
            return saved
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("error saving client", exc_info=e)
            raise

    def delete_by_id(self, client_id: int) -> None:
        client = self.db.get(Client, client_id)
        if not client:
            logger.debug("client not found for delete", extra={"client_id": client_id})
            return
        try:
            self.db.delete(client)
            self.db.commit()
            logger.info("client deleted", extra={"client_id": client_id})
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("error deleting client", exc_info=e)
            raise
