"""Who may sign a document right now."""
from ..models import SignerStatus, WorkflowType


def can_sign(signer, all_signers, workflow_type) -> bool:
    """True when ``signer`` is pending and the workflow lets them sign now.

    In a sequential workflow a signer waits for every signer with a lower
    ``signing_order``. Signers without an order sit outside the chain and may
    sign at any time; tied orders become eligible together.
    """
    if signer.status != SignerStatus.PENDING.value:
        return False
    if workflow_type != WorkflowType.SEQUENTIAL.value:
        return True
    if signer.signing_order is None:
        return True

    return all(
        other.status == SignerStatus.SIGNED.value
        for other in all_signers
        if other.id != signer.id
        and other.signing_order is not None
        and other.signing_order < signer.signing_order
    )


def next_signer(document, just_signed_order):
    """The signer holding ``just_signed_order + 1`` in a sequential document, if any."""
    if document.workflow_type != WorkflowType.SEQUENTIAL.value or just_signed_order is None:
        return None
    for signer in document.signers:
        if signer.signing_order == just_signed_order + 1:
            return signer
    return None


def unlocked_by(signer, all_signers, workflow_type) -> list:
    """Signers later in a sequential chain who may sign now that ``signer`` has.

    Gaps in the order do not matter: everyone ``can_sign`` lets through is
    returned, so a tied group opens in one step.
    """
    if workflow_type != WorkflowType.SEQUENTIAL.value or signer.signing_order is None:
        return []
    return [
        other
        for other in all_signers
        if other.signing_order is not None
        and other.signing_order > signer.signing_order
        and can_sign(other, all_signers, workflow_type)
    ]


def eligible_signers(document) -> list:
    signers = list(document.signers)
    return [s for s in signers if can_sign(s, signers, document.workflow_type)]
