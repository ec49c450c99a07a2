"""
Transactional e-mail through the Brevo HTTP API.
"""

import html
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import config
from app.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

FOOTER_HTML = (
    '<div style="text-align: center; margin-top: 25px; font-size: 12px; color: #666;">'
    "<p>This is an automated message, please do not reply to this email.</p></div>"
)


def _format_date(value: Optional[datetime], fallback: str = "To be determined") -> str:
    return value.strftime("%Y-%m-%d") if value else fallback


def _items_text(items: List[Dict[str, Any]]) -> str:
    return "\n".join(
        f"- {item.get('equipment_name') or 'Equipment Item'} (Quantity: {item['quantity']})"
        for item in items
    )


def _items_html(items: List[Dict[str, Any]]) -> str:
    rows = "".join(
        f"<li>{html.escape(item.get('equipment_name') or 'Equipment Item')} "
        f"<strong>(Quantity: {item['quantity']})</strong></li>"
        for item in items
    )
    return f'<ul style="background-color: #f9f9f9; padding: 15px; border-radius: 5px;">{rows}</ul>'


def _wrap_html(heading: str, color: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; '
        'padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">'
        f'<h2 style="color: {color}; text-align: center;">{heading}</h2>'
        f"{body}{FOOTER_HTML}</div>"
    )


class EmailService:
    """
    Thin Brevo client. Sender, CC and credentials come from config unless
    overridden at construction time.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        sender_email: Optional[str] = None,
        sender_name: Optional[str] = None,
        cc_email: Optional[str] = None,
        enabled: Optional[bool] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else config.brevo_api_key
        self.api_url = api_url or config.brevo_api_url
        self.sender = {
            "email": sender_email or config.brevo_sender_email,
            "name": sender_name or config.brevo_sender_name,
        }
        self.cc_email = cc_email if cc_email is not None else config.brevo_cc_email
        self.enabled = config.email_enabled if enabled is None else enabled
        self.timeout = timeout or config.email_timeout_seconds
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)

    async def send_email(
        self, to: str, subject: str, text_content: str, html_content: str
    ) -> Optional[Dict[str, Any]]:
        """
        Send one message.

        Returns:
            Brevo response body, or None when e-mail is disabled

        Raises:
            ExternalServiceError: On transport errors or a non-2xx response
        """
        if not self.is_configured:
            logger.info("E-mail disabled; skipped '%s' to %s", subject, to)
            return None

        payload: Dict[str, Any] = {
            "sender": self.sender,
            "to": [{"email": to}],
            "subject": subject,
            "textContent": text_content,
            "htmlContent": html_content,
        }
        if self.cc_email:
            payload["cc"] = [{"email": self.cc_email}]

        headers = {
            "api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                logger.error(f"Brevo send error for '{subject}': {e}")
                raise ExternalServiceError("Email", str(e)) from e

        data = response.json() if response.content else {}
        logger.info("E-mail '%s' sent to %s (messageId=%s)", subject, to, data.get("messageId"))
        return data

    async def send_approved(
        self,
        email: str,
        name: str,
        transaction_id: int,
        items: List[Dict[str, Any]],
        pick_up_date: Optional[datetime],
    ):
        subject = "Your Borrow Request Has Been Approved"
        pick_up = _format_date(pick_up_date)
        text = (
            f"Hello {name},\n\nGreat news! Your borrow request has been approved.\n\n"
            f"Transaction ID: {transaction_id}\n\nApproved Items:\n{_items_text(items)}\n\n"
            f"Pick-up Date: {pick_up}\n\n"
            "Please make sure to pick up your items on the scheduled date."
        )
        body = (
            f"<p>Hello <strong>{html.escape(name)}</strong>,</p>"
            "<p>Great news! Your borrow request has been approved.</p>"
            f"<p><strong>Transaction ID:</strong> {transaction_id}</p>"
            f"<p><strong>Pick-up Date:</strong> {pick_up}</p>"
            f"<h3>Approved Items:</h3>{_items_html(items)}"
        )
        return await self.send_email(
            email, subject, text, _wrap_html("Request Approved!", "#28a745", body)
        )

    async def send_rejected(
        self,
        email: str,
        name: str,
        transaction_id: int,
        reason: Optional[str] = None,
    ):
        subject = "Update on Your Borrow Request"
        reason = reason or "No specific reason provided"
        text = (
            f"Hello {name},\n\nUnfortunately your borrow request could not be approved.\n\n"
            f"Transaction ID: {transaction_id}\nReason: {reason}\n\n"
            "You may submit a new request at any time."
        )
        body = (
            f"<p>Hello <strong>{html.escape(name)}</strong>,</p>"
            "<p>Unfortunately your borrow request could not be approved.</p>"
            f"<p><strong>Transaction ID:</strong> {transaction_id}</p>"
            f"<p><strong>Reason:</strong> {html.escape(reason)}</p>"
        )
        return await self.send_email(
            email, subject, text, _wrap_html("Request Declined", "#dc3545", body)
        )

    async def send_borrowed(
        self,
        email: str,
        name: str,
        transaction_id: int,
        items: List[Dict[str, Any]],
        return_date: Optional[datetime],
    ):
        subject = "Items Successfully Borrowed"
        due = _format_date(return_date)
        text = (
            f"Hello {name},\n\nYour items have been successfully borrowed.\n\n"
            f"Transaction ID: {transaction_id}\nReturn Date: {due}\n\n"
            f"Borrowed Items:\n{_items_text(items)}\n\n"
            f"Please return all items by {due}."
        )
        body = (
            f"<p>Hello <strong>{html.escape(name)}</strong>,</p>"
            "<p>Your items have been successfully borrowed.</p>"
            f"<p><strong>Transaction ID:</strong> {transaction_id}</p>"
            f"<p><strong>Return Date:</strong> {due}</p>"
            f"<h3>Borrowed Items:</h3>{_items_html(items)}"
        )
        return await self.send_email(
            email, subject, text, _wrap_html("Items Successfully Borrowed!", "#28a745", body)
        )

    async def send_overdue_reminder(
        self,
        email: str,
        name: str,
        transaction_id: int,
        items: List[Dict[str, Any]],
        return_date: Optional[datetime],
    ):
        subject = "Overdue Equipment Reminder"
        due = _format_date(return_date, fallback="the agreed date")
        text = (
            f"Hello {name},\n\nThe items below were due back on {due} and have not been returned.\n\n"
            f"Transaction ID: {transaction_id}\n\nItems:\n{_items_text(items)}\n\n"
            "Please return them as soon as possible."
        )
        body = (
            f"<p>Hello <strong>{html.escape(name)}</strong>,</p>"
            f"<p>The items below were due back on <strong>{due}</strong> and have not been returned.</p>"
            f"<p><strong>Transaction ID:</strong> {transaction_id}</p>"
            f"{_items_html(items)}"
            "<p>Please return them as soon as possible.</p>"
        )
        return await self.send_email(
            email, subject, text, _wrap_html("Overdue Reminder", "#ffc107", body)
        )


email_service = EmailService()
