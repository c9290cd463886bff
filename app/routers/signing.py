from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from .. import schemas
from ..dependencies import get_blob_store, get_completion_coordinator, get_workflow_service
from ..services.completion import CompletionCoordinator
from ..services.document_service import artifact_for_download
from ..services.workflow import WorkflowService, signer_by_token
from .documents import client_info

router = APIRouter()


@router.get("/{token}", response_model=schemas.SigningSession)
def view_document_for_signing(token: str, workflow: WorkflowService = Depends(get_workflow_service)):
    return workflow.get_signing_session(token)


@router.post("/{token}", response_model=schemas.SubmitResult)
def sign_document(
    token: str,
    submission: schemas.SubmitSignaturesRequest,
    request: Request,
    coordinator: CompletionCoordinator = Depends(get_completion_coordinator),
):
    ip_address, user_agent = client_info(request)
    completed = coordinator.submit_signatures(token, submission.signatures, ip_address, user_agent)
    return {"document_completed": completed}


@router.post("/{token}/decline", response_model=schemas.DeclineResult)
def decline_document(
    token: str,
    request: Request,
    decline: schemas.DeclineRequest | None = None,
    workflow: WorkflowService = Depends(get_workflow_service),
):
    ip_address, user_agent = client_info(request)
    reason = decline.reason if decline else None
    return workflow.decline(token, reason, ip_address, user_agent)


@router.get("/{token}/download")
def download_by_token(
    token: str,
    workflow: WorkflowService = Depends(get_workflow_service),
    blob_store=Depends(get_blob_store),
):
    signer = signer_by_token(workflow.db, token)
    ref, filename = artifact_for_download(signer.document, blob_store)
    return Response(
        content=blob_store.read(ref),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
