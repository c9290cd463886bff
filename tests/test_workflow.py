import pytest

from app import models, schemas
from app.errors import AuthorizationError, NotFoundError, WorkflowStateError

THREE_SIGNERS = (
    ("alice@example.com", "Alice"),
    ("bob@example.com", "Bob"),
    ("carol@example.com", "Carol"),
)


@pytest.fixture
def stranger(db):
    user = models.User(email="stranger@example.com", name="Stranger")
    db.add(user)
    db.commit()
    return user


def audit_actions(db, document_id):
    rows = db.query(models.AuditLog).filter(models.AuditLog.document_id == document_id).order_by(models.AuditLog.id)
    return [row.action for row in rows]


class TestSend:
    def test_parallel_notifies_everyone(self, db, owner, services, make_document, notifier):
        document = make_document("parallel", THREE_SIGNERS)
        _, workflow, _ = services(db)

        result = workflow.send(document.id, owner)

        assert result == {"document_id": document.id, "status": "pending", "signers_notified": 3}
        assert sorted(email for email, _, _ in notifier.signing_requests) == [e for e, _ in THREE_SIGNERS]
        db.refresh(document)
        assert document.status == "pending"
        assert audit_actions(db, document.id) == ["SENT"]

    def test_sequential_notifies_first_signer_only(self, db, owner, services, make_document, notifier):
        document = make_document("sequential", THREE_SIGNERS)
        _, workflow, _ = services(db)

        workflow.send(document.id, owner)

        assert [email for email, _, _ in notifier.signing_requests] == ["alice@example.com"]

    def test_sequential_also_notifies_unordered_signers(self, db, owner, services, make_document, notifier):
        document = make_document("sequential", THREE_SIGNERS)
        carol = next(s for s in document.signers if s.email == "carol@example.com")
        carol.signing_order = None
        db.commit()
        _, workflow, _ = services(db)

        workflow.send(document.id, owner)

        assert sorted(email for email, _, _ in notifier.signing_requests) == ["alice@example.com", "carol@example.com"]

    def test_only_owner_can_send(self, db, stranger, services, make_document):
        document = make_document()
        _, workflow, _ = services(db)
        with pytest.raises(AuthorizationError):
            workflow.send(document.id, stranger)

    def test_cannot_send_twice(self, db, owner, services, make_document):
        document = make_document()
        _, workflow, _ = services(db)
        workflow.send(document.id, owner)
        with pytest.raises(WorkflowStateError):
            workflow.send(document.id, owner)

    def test_notification_failure_keeps_document_pending(self, db, owner, services, make_document, notifier):
        def explode(*args):
            raise RuntimeError("smtp down")

        notifier.notify_signing_request = explode
        document = make_document()
        _, workflow, _ = services(db)

        workflow.send(document.id, owner)

        db.refresh(document)
        assert document.status == "pending"

    def test_sent_document_is_frozen(self, db, owner, services, make_document):
        document = make_document()
        documents, workflow, _ = services(db)
        workflow.send(document.id, owner)
        with pytest.raises(WorkflowStateError):
            documents.delete_field(document.id, document.fields[0].id, owner)


class TestDecline:
    def test_manual_policy_leaves_document_pending(self, db, owner, services, make_document, token_of):
        document = make_document("parallel", THREE_SIGNERS[:2])
        _, workflow, _ = services(db, decline_policy="manual")
        workflow.send(document.id, owner)

        result = workflow.decline(token_of(document.id, "alice@example.com"), "Wrong address")

        assert result == {"signer_status": "declined", "document_status": "pending"}
        alice = db.query(models.Signer).filter_by(email="alice@example.com").one()
        assert alice.decline_reason == "Wrong address"
        assert alice.declined_at is not None

    def test_cancel_on_decline(self, db, owner, services, make_document, token_of):
        document = make_document("parallel", THREE_SIGNERS[:2])
        _, workflow, _ = services(db, decline_policy="cancel_on_decline")
        workflow.send(document.id, owner)

        result = workflow.decline(token_of(document.id, "bob@example.com"))

        assert result["document_status"] == "cancelled"
        assert audit_actions(db, document.id) == ["SENT", "DECLINED", "CANCELLED"]

    def test_cancel_when_all_declined(self, db, owner, services, make_document, token_of):
        document = make_document("parallel", THREE_SIGNERS[:2])
        _, workflow, _ = services(db, decline_policy="cancel_when_all_declined")
        workflow.send(document.id, owner)

        first = workflow.decline(token_of(document.id, "alice@example.com"))
        second = workflow.decline(token_of(document.id, "bob@example.com"))

        assert first["document_status"] == "pending"
        assert second["document_status"] == "cancelled"

    def test_signed_and_declined_mix_is_not_all_declined(self, db, owner, services, make_document, token_of):
        document = make_document("parallel", THREE_SIGNERS[:2])
        _, workflow, coordinator = services(db, decline_policy="cancel_when_all_declined")
        workflow.send(document.id, owner)
        alice_field = next(f for f in document.fields if f.signer_email == "alice@example.com")
        coordinator.submit_signatures(
            token_of(document.id, "alice@example.com"),
            [schemas.SignatureInput(field_id=alice_field.id, signature_type="typed", text_value="Alice")],
        )

        result = workflow.decline(token_of(document.id, "bob@example.com"))

        assert result["document_status"] == "pending"
        db.refresh(document)
        assert document.status == "pending"

    def test_cannot_decline_twice(self, db, owner, services, make_document, token_of):
        document = make_document()
        _, workflow, _ = services(db)
        workflow.send(document.id, owner)
        token = token_of(document.id, "alice@example.com")
        workflow.decline(token)
        with pytest.raises(WorkflowStateError):
            workflow.decline(token)

    def test_unknown_token(self, db, services):
        _, workflow, _ = services(db)
        with pytest.raises(NotFoundError):
            workflow.decline("nope")


class TestCancel:
    def test_owner_cancels_pending_document(self, db, owner, services, make_document):
        document = make_document()
        _, workflow, _ = services(db)
        workflow.send(document.id, owner)

        cancelled = workflow.cancel(document.id, owner)

        assert cancelled.status == "cancelled"
        assert cancelled.completed_at is None

    def test_draft_cannot_be_cancelled(self, db, owner, services, make_document):
        document = make_document()
        _, workflow, _ = services(db)
        with pytest.raises(WorkflowStateError):
            workflow.cancel(document.id, owner)


class TestStatusAndSession:
    def test_status_counts(self, db, owner, services, make_document, token_of):
        document = make_document("sequential", THREE_SIGNERS)
        _, workflow, _ = services(db)
        workflow.send(document.id, owner)
        workflow.decline(token_of(document.id, "alice@example.com"))

        status = workflow.get_status(document.id, owner)

        assert [s.email for s in status["signers"]] == [e for e, _ in THREE_SIGNERS]
        assert (status["total_signers"], status["signed_count"], status["pending_count"], status["declined_count"]) == (3, 0, 2, 1)

    def test_session_lists_only_the_signers_fields(self, db, owner, services, make_document, token_of):
        document = make_document("parallel", THREE_SIGNERS[:2])
        _, workflow, _ = services(db)
        workflow.send(document.id, owner)

        session = workflow.get_signing_session(token_of(document.id, "bob@example.com"))

        assert session["signer"].email == "bob@example.com"
        assert [f.signer_email for f in session["fields"]] == ["bob@example.com"]
        assert session["signatures"] == []

    def test_session_waits_for_turn(self, db, owner, services, make_document, token_of):
        document = make_document("sequential", THREE_SIGNERS)
        _, workflow, _ = services(db)
        workflow.send(document.id, owner)
        with pytest.raises(WorkflowStateError, match="not your turn"):
            workflow.get_signing_session(token_of(document.id, "bob@example.com"))

    def test_session_before_send(self, db, services, make_document, token_of):
        document = make_document()
        _, workflow, _ = services(db)
        with pytest.raises(WorkflowStateError):
            workflow.get_signing_session(token_of(document.id, "alice@example.com"))
