from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from client_crud.models.client import Client
from client_crud.repositories.client import ClientStore

logger = logging.getLogger(__name__)

# ---------- Messages (renvoyés tels quels au client HTTP) ----------
NO_CLIENTS_MSG = "No se encuentran Clientes"
CLIENT_NOT_FOUND_MSG = "No se encuentra el Cliente: "
EMAIL_ALREADY_EXISTS_MSG = "Este correo electrónico ya existe en la base de datos: "
SAVED_MSG = "El correo electrónico se guardo exitosamente"
DELETED_MSG = "Se elimino exitosamente el usuario: "
DELETE_NOT_FOUND_MSG = "No existe el usuario seleccionado"


@dataclass(frozen=True)
class ServiceResult:
    """Statut HTTP + corps (message ou données) d'une opération."""
    status_code: HTTPStatus
    body: Any

    @property
    def ok(self) -> bool:
        return self.status_code == HTTPStatus.OK


class ClientService:
    def __init__(self, store: ClientStore):
        self.store = store

    def get_clients(self) -> ServiceResult:
        clients = self.store.find_all()
        if not clients:
            logger.debug("no clients stored")
            return ServiceResult(HTTPStatus.NOT_FOUND, NO_CLIENTS_MSG)
        return ServiceResult(HTTPStatus.OK, clients)

    def get_client(self, client_id: int) -> ServiceResult:
        client = self.store.find_by_id(client_id)
        if client is None:
            return ServiceResult(HTTPStatus.NOT_FOUND, f"{CLIENT_NOT_FOUND_MSG}{client_id}")
        return ServiceResult(HTTPStatus.OK, client)

    def save_or_update(self, client: Client) -> ServiceResult:
        """
        Crée ou met à jour un client si son email n'existe pas encore.

        La recherche par email n'exclut pas l'id du client lui-même: une mise
        à jour qui conserve l'email est refusée comme un doublon.
        """
        if self.store.find_by_email(client.email) is not None:
            logger.info("email already exists", extra={"email": client.email})
            return ServiceResult(HTTPStatus.NOT_FOUND, f"{EMAIL_ALREADY_EXISTS_MSG}{client.email}")
        self.store.save(client)
        return ServiceResult(HTTPStatus.OK, SAVED_MSG)

    def delete(self, client_id: int) -> ServiceResult:
        client = self.store.find_by_id(client_id)
        if client is None:
            logger.debug("client not found for delete", extra={"client_id": client_id})
            return ServiceResult(HTTPStatus.NOT_FOUND, DELETE_NOT_FOUND_MSG)
        # lu avant la suppression: l'instance est expirée après le commit
        name = client.name
        self.store.delete_by_id(client_id)
        return ServiceResult(HTTPStatus.OK, f"{DELETED_MSG}{name}")
