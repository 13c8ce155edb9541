"""Resume document routes."""
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Literal, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.errors import DocumentServiceError, UnexpectedError
from app.core.security import AuthUser, get_current_user
from app.services.document_service import DocumentService
from app.services.storage import KeyValueStore, get_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/document", tags=["Documents"])


# Request/Response schemas
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateDocumentRequest(CamelModel):
    title: str = Field(min_length=1)


class UpdateDocumentRequest(CamelModel):
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    summary: Optional[str] = None
    theme_color: Optional[str] = None
    status: Optional[Literal["private", "public", "archived", ""]] = None
    current_position: Optional[int] = None
    personal_info: Optional[Dict[str, Any]] = None
    experience: Optional[List[Dict[str, Any]]] = None
    education: Optional[List[Dict[str, Any]]] = None
    skills: Optional[List[Dict[str, Any]]] = None


class RestoreDocumentRequest(CamelModel):
    document_id: Optional[str] = None
    status: Optional[str] = None


def get_document_service(store: KeyValueStore = Depends(get_store)) -> DocumentService:
    return DocumentService(store)


@contextmanager
def _failure(message: str):
    """Report anything other than a service error as a 500 with ``message``."""
    try:
        yield
    except DocumentServiceError:
        raise
    except Exception as e:
        logger.exception("%s", message)
        raise UnexpectedError(message, error=str(e))


@router.post("/create")
def create_document(
    request: CreateDocumentRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """
    Create a new private document.

    Protected endpoint - requires JWT authentication.
    """
    with _failure("Failed to create document"):
        document = service.create(request.title, current_user)

    return {"success": "ok", "data": document}


@router.patch("/update/{document_id}")
def update_document(
    document_id: str,
    request: UpdateDocumentRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """
    Update document fields and its personal info, experience, education and skills.

    Fields sent as empty strings, 0 or false are ignored. Child items with an
    ``id`` update the matching record; items without one are added.

    Raises:
        404: document not found or not owned by the caller
    """
    changes = request.model_dump(by_alias=True, exclude_unset=True)
    with _failure("Failed to update document"):
        service.update(document_id, current_user.id, changes)

    return {"success": "ok", "message": "Updated successfully"}


@router.patch("/restore/archive")
def restore_document(
    request: RestoreDocumentRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Restore an archived document; the body must assert ``status == "archived"``."""
    with _failure("Failed to restore document"):
        document = service.restore_from_archive(request.document_id, current_user.id, request.status)

    return {"success": "ok", "message": "Updated successfully", "data": document}


@router.get("/all")
def list_documents(
    current_user: AuthUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    with _failure("Failed to fetch documents"):
        documents = service.list_active(current_user.id)

    return {"success": True, "data": documents}


@router.get("/trash/all")
def list_trash(
    current_user: AuthUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    with _failure("Failed to fetch documents"):
        documents = service.list_archived(current_user.id)

    return {"success": True, "data": documents}


@router.get("/public/doc/{document_id}")
def get_public_document(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    """
    Fetch a public document with all of its sections.

    Open endpoint - no authentication. Non-public documents answer 401.
    """
    with _failure("Failed to fetch document"):
        document = service.get_public(document_id)

    return {"success": True, "data": document}


@router.get("/{document_id}")
def get_document(
    document_id: str,
    current_user: AuthUser = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Fetch an owned document with personal info, experiences, educations and skills."""
    with _failure("Failed to fetch document"):
        document = service.get_by_id(document_id, current_user.id)

    return {"success": True, "data": document}
