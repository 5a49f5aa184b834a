from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from client_crud.core.database import get_db
from client_crud.models.client import Client
from client_crud.repositories.client import ClientRepository
from client_crud.schemas.client import ClientRequest, ClientResponse
from client_crud.services.client_service import ClientService, ServiceResult

router = APIRouter(prefix="/api/clients", tags=["Clients"])
logger = logging.getLogger(__name__)


# ---------- Dépendance ClientService ----------
def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    return ClientService(ClientRepository(db))


def _serialize(body: Any) -> Any:
    if isinstance(body, Client):
        return ClientResponse.model_validate(body).model_dump()
    if isinstance(body, list):
        return [_serialize(item) for item in body]
    return body


def _to_response(result: ServiceResult) -> JSONResponse:
    """Transmet le statut et le corps du service tels quels."""
    return JSONResponse(status_code=int(result.status_code), content=_serialize(result.body))

# ===================== CRUD =====================

@router.get("/")
def list_clients(svc: ClientService = Depends(get_client_service)):
    """Liste tous les clients (404 si aucun)."""
    result = svc.get_clients()
    logger.debug("clients listed", extra={"status_code": int(result.status_code)})
    return _to_response(result)


@router.get("/{client_id}")
def read_client(client_id: int, svc: ClientService = Depends(get_client_service)):
    """Détail d'un client par ID."""
    return _to_response(svc.get_client(client_id))


@router.post("/")
def save_client(client: ClientRequest, svc: ClientService = Depends(get_client_service)):
    """Crée un client, ou le met à jour si le corps porte un id."""
    result = svc.save_or_update(client.to_entity())
    logger.info("client save requested", extra={"email": client.email, "status_code": int(result.status_code)})
    return _to_response(result)


@router.put("/{client_id}")
def update_client(
    client_id: int,
    client: ClientRequest,
    svc: ClientService = Depends(get_client_service),
):
    """Met à jour le client identifié par l'URL (l'id du corps est ignoré)."""
    entity = client.model_copy(update={"id": client_id}).to_entity()
    result = svc.save_or_update(entity)
    logger.info("client update requested", extra={"client_id": client_id, "status_code": int(result.status_code)})
    return _to_response(result)


@router.delete("/{client_id}")
def delete_client(client_id: int, svc: ClientService = Depends(get_client_service)):
    """Supprime un client par ID."""
    result = svc.delete(client_id)
    logger.info("client delete requested", extra={"client_id": client_id, "status_code": int(result.status_code)})
    return _to_response(result)
