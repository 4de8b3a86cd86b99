"""
Email Channel Adapter.

Offline chat notifications to the shop administrator over SMTP. smtplib is
blocking, so the send runs in the shared I/O thread pool. When SMTP is
disabled in channels.yaml the notification is only logged.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from eshop.backend.core.concurrency import get_io_pool
from eshop.backend.core.config import get_app_config, get_settings
from eshop.backend.core.exceptions import ExternalServiceError
from eshop.backend.core.logging import get_logger, log_with_source
from eshop.backend.core.resilience import call_with_resilience
from eshop.backend.gateway.adapters.base import ChannelAdapter, DeliveryResult, RelayMessage

logger = get_logger(__name__)

EMAIL_MAX_MESSAGE_LENGTH = 100_000


class EmailAdapter(ChannelAdapter):
    def __init__(self, recipient: str, subject_prefix: str) -> None:
        self._recipient = recipient
        self._subject_prefix = subject_prefix

    @property
    def channel_name(self) -> str:
        return "email"

    @property
    def max_message_length(self) -> int:
        return EMAIL_MAX_MESSAGE_LENGTH

    def build_subject(self, message: RelayMessage) -> str:
        subject = message.subject or f"Nová správa z chatu ({message.visitor_name or 'Návštevník'})"
        return f"{self._subject_prefix} {subject}".strip()

    def _build_mime(self, message: RelayMessage, sender: str) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = sender
        msg["To"] = self._recipient
        msg["Subject"] = self.build_subject(message)
        msg["Message-ID"] = make_msgid(domain=sender.rpartition("@")[2] or None)
        if message.visitor_email:
            msg["Reply-To"] = message.visitor_email
        msg.attach(MIMEText(self.format_text(message), "plain", "utf-8"))
        return msg

    def _send_blocking(self, msg: MIMEMultipart) -> None:
        smtp_config = get_app_config().channels.smtp
        with smtplib.SMTP(smtp_config.host, smtp_config.port, timeout=smtp_config.timeout_seconds) as server:
            if smtp_config.use_tls:
                server.starttls()
            if smtp_config.username:
                server.login(smtp_config.username, get_settings().smtp_password)
            server.send_message(msg)

    async def _send(self, msg: MIMEMultipart) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(get_io_pool(), self._send_blocking, msg)

    async def deliver(self, message: RelayMessage) -> DeliveryResult:
        smtp_config = get_app_config().channels.smtp

        if not smtp_config.enabled:
            log_with_source(
                logger,
                "email",
                "info",
                "Simulated offline email notification",
                to=self._recipient,
                subject=self.build_subject(message),
                session_key=message.session_key,
            )
            return DeliveryResult(channel=self.channel_name)

        msg = self._build_mime(message, smtp_config.sender)
        try:
            await call_with_resilience(
                "smtp",
                self._send,
                msg,
                retry_on=(smtplib.SMTPServerDisconnected, ConnectionError),
                timeout=smtp_config.timeout_seconds,
            )
        except (smtplib.SMTPException, OSError) as e:
            log_with_source(logger, "email", "error", "Email notification failed", to=self._recipient, error=str(e))
            raise ExternalServiceError(f"Odoslanie e-mailu zlyhalo: {e}") from e

        log_with_source(
            logger,
            "email",
            "info",
            "Offline email notification sent",
            to=self._recipient,
            session_key=message.session_key,
        )
        return DeliveryResult(channel=self.channel_name, external_message_id=msg["Message-ID"])
