import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify_signing_request(self, signer, document, sender) -> None: ...

    def notify_completion(self, owner, document) -> None: ...


class LoggingNotifier:
    """Writes outgoing messages to the log instead of sending e-mail."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def signing_link(self, signer) -> str:
        return f"{self.base_url}/?signing_token={signer.access_token}"

    def notify_signing_request(self, signer, document, sender) -> None:
        sender_name = getattr(sender, "name", None) or getattr(sender, "email", "someone")
        logger.info(
            "SENDING EMAIL TO %s: %s asks you to sign %r: %s",
            signer.email, sender_name, document.title, self.signing_link(signer),
        )

    def notify_completion(self, owner, document) -> None:
        logger.info("SENDING EMAIL TO %s: %r has been signed by everyone", owner.email, document.title)
