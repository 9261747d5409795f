"""Outbound mail for the public contact form."""

import logging

from flask import current_app
from flask_mail import Message as MailMessage

from portal.extensions import mail


logger = logging.getLogger(__name__)


class MailDeliveryError(RuntimeError):
    pass


def send_contact_enquiry(name, email, phone, subject, message):
    """Forward a contact-form enquiry to the consultancy inbox."""

    recipient = current_app.config.get('CONTACT_RECIPIENT') or current_app.config.get('ADMIN_EMAIL')
    msg = MailMessage(
        subject=f'Enquiry from {name}: {subject}',
        recipients=[recipient],
        reply_to=email,
    )
    msg.body = (
        f"New enquiry from the {current_app.config.get('SITE_NAME', 'website')} contact form:\n\n"
        f"Name: {name}\n"
        f"Email: {email}\n"
        f"Phone: {phone}\n"
        f"Subject: {subject}\n\n"
        f"Message:\n{message}\n"
    )
    try:
        mail.send(msg)
    except Exception as exc:
        logger.error('Failed to send contact enquiry from %s: %s', email, exc)
        raise MailDeliveryError('Failed to send email due to server error.') from exc
    logger.info('Contact enquiry forwarded for %s', email)
