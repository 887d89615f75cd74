# application/use_cases/compose_usecase.py
from __future__ import annotations
import logging
from typing import Any, List, Optional, Protocol

from domain.errors import DuplicateRecipientError
from domain.models import ComposeDraft, EmailAddress, MailItem, MessageAction
from domain.recipients import RecipientSet, is_valid_email, parse_recipients
from infrastructure.email.graph_client import build_message

logger = logging.getLogger(__name__)

REPLY_PREFIX = "Re: "
FORWARD_PREFIX = "Fwd: "
FORWARD_HEADER = "Forwarded message:\n\n"


class ClientSource(Protocol):
    def get_client(self) -> Optional[Any]: ...


class Navigator(Protocol):
    def go_back(self) -> None: ...


def reply_subject(subject: str) -> str:
    return subject if subject.startswith(REPLY_PREFIX) else f"{REPLY_PREFIX}{subject}"


def forward_subject(subject: str) -> str:
    return subject if subject.startswith(FORWARD_PREFIX) else f"{FORWARD_PREFIX}{subject}"


class ComposeMailUseCase:
    """
    Borrador de redacción: valida destinatarios (todo o nada), decide si se puede enviar
    y envía / responde / reenvía delegando en el cliente Graph. Sin reintentos.
    """

    def __init__(self, *, session: ClientSource, navigator: Navigator) -> None:
        self.session = session
        self.navigator = navigator
        self.draft = ComposeDraft()
        self.recipients = RecipientSet()
        self.can_send = False

    # ───────── estado del borrador ─────────
    def _refresh_can_send(self) -> None:
        self.can_send = len(self.recipients) > 0 and bool(self.draft.body)

    def set_recipient_text(self, raw: str) -> None:
        # se reconstruye desde cero en cada cambio del texto
        self.draft.recipient_text = raw
        self.recipients.replace(parse_recipients(raw))
        self._refresh_can_send()

    def set_body(self, text: str) -> None:
        self.draft.body = text
        self._refresh_can_send()

    def set_subject(self, text: str) -> None:
        self.draft.subject = text

    def add_clicked(self, address: str, name: str = "") -> None:
        """Añade una sugerencia pulsada por el usuario."""
        if not is_valid_email(address):
            return
        self.draft.recipient_text = ""
        try:
            self.recipients.add(EmailAddress(address=address.strip(), name=name))
        except DuplicateRecipientError:
            logger.info("No se pudo añadir %s a los destinatarios (ya estaba)", address)
        self._refresh_can_send()

    def reset(self) -> None:
        self.draft = ComposeDraft()
        self.recipients.clear()
        self.can_send = False

    # ───────── apertura ─────────
    def load_suggestions(self) -> List[EmailAddress]:
        client = self.session.get_client()
        if client is None:
            return []
        self.draft.suggestions = client.list_people()
        return self.draft.suggestions

    def open(self, mail: Optional[MailItem] = None, action: Optional[MessageAction] = None) -> None:
        self.reset()
        self.load_suggestions()
        if mail is None or action is None:
            return

        self.draft.action = action
        if action == MessageAction.REPLY:
            self.draft.subject = reply_subject(mail.subject)
            if mail.sender:
                self.recipients.add(EmailAddress(address=mail.sender, name=mail.sender_name))
            self.draft.replying_to = mail
        elif action == MessageAction.FORWARD:
            self.draft.subject = forward_subject(mail.subject)
            self.draft.body = f"{FORWARD_HEADER}{mail.body}"
        self._refresh_can_send()

    # ───────── envío ─────────
    def _ready_client(self) -> Optional[Any]:
        if not self.can_send:
            return None
        if not all(is_valid_email(a.address) for a in self.recipients):
            return None
        return self.session.get_client()

    def _finish(self) -> bool:
        self.reset()
        self.navigator.go_back()
        return True

    def send(self) -> bool:
        client = self._ready_client()
        if client is None:
            return False

        message = build_message(subject=self.draft.subject, body_text=self.draft.body, to=self.recipients)
        replying_to = self.draft.replying_to
        if replying_to is not None:
            logger.info("Respondiendo a %s (%d destinatarios)", replying_to.id, len(self.recipients))
            client.reply(replying_to.id, message)
        else:
            logger.info("Enviando '%s' a %s", self.draft.subject, ", ".join(self.recipients.addresses()))
            client.send_mail(message)
        return self._finish()

    def forward(self) -> bool:
        client = self._ready_client()
        if client is None:
            return False

        subject = forward_subject(self.draft.subject)
        message = build_message(subject=subject, body_text=self.draft.body, to=self.recipients)
        logger.info("Reenviando '%s' a %s", subject, ", ".join(self.recipients.addresses()))
        client.send_mail(message)
        return self._finish()
