import io
import logging
from datetime import datetime
from html import escape

from fastapi import UploadFile
from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from pydantic import EmailStr
from starlette.datastructures import Headers

from ecolens.core.config import Settings
from ecolens.core.errors import NotificationError
from ecolens.models.report import ViolationReport

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/png": "png", "image/webp": "webp", "image/gif": "gif"}


def build_mail_config(settings: Settings) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=settings.MAIL_SUPPRESS_SEND,
    )


def build_authority_alert(
    report: ViolationReport,
    reporter_email: str,
    recipient: str,
    evidence: bytes
) -> MessageSchema:
    """Official alert for the authority a report was forwarded to, evidence attached."""
    authority = report.forwarded_to or "Local Authority"
    now = datetime.now()

    html = f"""
    <div style="font-family: Arial, sans-serif; border: 1px solid #333; padding: 20px; max-width: 600px;">
        <h2 style="color: #d32f2f; border-bottom: 2px solid #d32f2f; padding-bottom: 10px;">
            Violation Report #{report.reference}
        </h2>
        <p><strong>To:</strong> {escape(authority)}</p>
        <p><strong>Reporter Email:</strong> {escape(reporter_email)}</p>
        <p><strong>Date:</strong> {escape(report.offense_date or now.strftime('%d/%m/%Y'))} |
           <strong>Time:</strong> {escape(report.offense_time or now.strftime('%I:%M:%S %p'))}</p>
        <div style="background-color: #f9f9f9; padding: 15px; margin: 20px 0; border-left: 4px solid #d32f2f;">
            <h3 style="margin-top: 0;">Offense Details</h3>
            <ul style="line-height: 1.6;">
                <li><strong>Violation:</strong> {escape(report.title)}</li>
                <li><strong>Category:</strong> {escape(report.category)}</li>
                <li><strong>Severity:</strong> <span style="color: red; font-weight: bold;">{escape(report.severity)}</span></li>
                <li><strong>Location:</strong> {escape(report.location)}</li>
                <li><strong>Applicable Law:</strong> {escape(report.applicable_law or 'N/A')}</li>
            </ul>
        </div>
        <p><strong>Officer Observation:</strong><br/>{escape(report.description or '')}</p>
        <div style="margin-top: 20px; font-size: 12px; color: #666; text-align: center;">
            <p>Automated dispatch via EcoLens.<br/>Evidence attached.</p>
        </div>
    </div>
    """

    mime_type = report.evidence_mime_type or "image/jpeg"
    attachment = UploadFile(
        file=io.BytesIO(evidence),
        filename=f"evidence_photo.{_EXTENSIONS.get(mime_type, 'jpg')}",
        headers=Headers({"content-type": mime_type}),
    )

    return MessageSchema(
        subject=f"OFFICIAL ALERT: {report.category} Detected - {authority}",
        recipients=[recipient],
        body=html,
        subtype=MessageType.html,
        attachments=[attachment],
    )


def build_welcome_email(email: EmailStr, name: str) -> MessageSchema:
    html = f"""
    <div style="font-family: Arial, sans-serif; padding: 20px; border: 1px solid #ddd; max-width: 600px;">
        <h2 style="color: #2e7d32; text-align: center;">Welcome to the Eco Enforcement Network!</h2>
        <p>Dear {escape(name)},</p>
        <p>Thank you for registering with <strong>EcoLens</strong>.</p>
        <ul>
            <li><strong>Visual Scanner:</strong> detect traffic &amp; environmental violations using AI.</li>
            <li><strong>Smart Routing:</strong> reports go to the nearest Police Station or Municipality.</li>
        </ul>
        <p style="font-size: 12px; color: #666;">This is an automated message. Please do not reply.</p>
    </div>
    """
    return MessageSchema(
        subject=f"Welcome to EcoLens, {name}!",
        recipients=[email],
        body=html,
        subtype=MessageType.html
    )


class Mailer:
    """Outbound email. One instance per process, created in the app lifespan."""

    def __init__(self, config: ConnectionConfig, authority_recipient: str):
        self.fm = FastMail(config)
        self.authority_recipient = authority_recipient

    async def send_authority_alert(
        self,
        report: ViolationReport,
        reporter_email: str,
        evidence: bytes
    ) -> None:
        """
        Raises:
            NotificationError: If the message could not be delivered
        """
        message = build_authority_alert(report, reporter_email, self.authority_recipient, evidence)
        try:
            await self.fm.send_message(message)
        except Exception as e:
            raise NotificationError.delivery_failed(self.authority_recipient, e) from e
        logger.info(f"Authority alert for report #{report.reference} sent to {self.authority_recipient}")

    async def send_welcome_email(self, email: EmailStr, name: str) -> None:
        """Best-effort; runs as a background task after signup."""
        try:
            await self.fm.send_message(build_welcome_email(email, name))
            logger.info(f"Welcome email sent to {email}")
        except Exception as e:
            logger.error(f"Welcome email to {email} failed: {e}")
