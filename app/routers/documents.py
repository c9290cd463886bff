from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import Response

from .. import models, schemas
from ..dependencies import get_blob_store, get_document_service, get_workflow_service
from ..services.document_service import DocumentService, artifact_for_download
from ..services.workflow import WorkflowService
from .users import get_current_user

router = APIRouter()


def client_info(request: Request) -> tuple[str | None, str | None]:
    host = request.client.host if request.client else None
    return host, request.headers.get("user-agent")


@router.post("/upload", response_model=schemas.Document, status_code=201)
def upload_document(
    file: UploadFile = File(...),
    title: str | None = Form(None),
    workflow_type: models.WorkflowType = Form(models.WorkflowType.PARALLEL),
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    content = file.file.read()
    return service.upload(current_user, file.filename, content, title=title, workflow_type=workflow_type)


@router.get("/", response_model=list[schemas.Document])
def list_documents(
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.list_documents(current_user)


@router.get("/{document_id}", response_model=schemas.DocumentDetail)
def get_document(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.get_document(document_id, current_user)


@router.get("/{document_id}/download")
def download_document(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    blob_store=Depends(get_blob_store),
):
    document = service.get_document(document_id, current_user)
    ref, filename = artifact_for_download(document, blob_store)
    return Response(
        content=blob_store.read(ref),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/{document_id}/signers", response_model=schemas.Signer, status_code=201)
def add_signer(
    document_id: int,
    signer: schemas.SignerCreate,
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.add_signer(document_id, current_user, signer)


@router.delete("/{document_id}/signers/{signer_id}", status_code=204)
def remove_signer(
    document_id: int,
    signer_id: int,
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    service.remove_signer(document_id, signer_id, current_user)
    return Response(status_code=204)


@router.post("/{document_id}/fields", response_model=schemas.Field, status_code=201)
def add_field(
    document_id: int,
    field: schemas.FieldCreate,
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.add_field(document_id, current_user, field)


@router.patch("/{document_id}/fields/{field_id}", response_model=schemas.Field)
def update_field(
    document_id: int,
    field_id: int,
    field: schemas.FieldUpdate,
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.update_field(document_id, field_id, current_user, field)


@router.delete("/{document_id}/fields/{field_id}", status_code=204)
def delete_field(
    document_id: int,
    field_id: int,
    current_user: models.User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    service.delete_field(document_id, field_id, current_user)
    return Response(status_code=204)


@router.post("/{document_id}/send", response_model=schemas.SendResult)
def send_document(
    document_id: int,
    request: Request,
    current_user: models.User = Depends(get_current_user),
    workflow: WorkflowService = Depends(get_workflow_service),
):
    ip_address, user_agent = client_info(request)
    return workflow.send(document_id, current_user, ip_address, user_agent)


@router.post("/{document_id}/cancel", response_model=schemas.Document)
def cancel_document(
    document_id: int,
    request: Request,
    current_user: models.User = Depends(get_current_user),
    workflow: WorkflowService = Depends(get_workflow_service),
):
    ip_address, user_agent = client_info(request)
    return workflow.cancel(document_id, current_user, ip_address, user_agent)


@router.get("/{document_id}/status", response_model=schemas.DocumentStatusReport)
def document_status(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    workflow: WorkflowService = Depends(get_workflow_service),
):
    return workflow.get_status(document_id, current_user)
