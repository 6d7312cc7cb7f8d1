"""
Email Service

FLOW OVERVIEW
- mail: Flask-Mail extension, initialized in the app factory.
- send_email(to, subject, html)
  • Build and send a Message; raises EmailDeliveryError on failure.
- send_approval_email(doctor)
  • "Account approved" notice rendered from templates/email/approval.html.
- send_password_reset_email(user_name, email, reset_link, user_type)
  • Recovery link rendered from templates/email/password_reset.html.

Callers decide whether a delivery failure is fatal: approval swallows it,
password reset reports it.
"""

import logging

from flask import current_app, render_template
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

mail = Mail()


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the mail server"""


def send_email(to, subject, html):
    """Send an HTML email to a single recipient"""
    try:
        msg = Message(
            subject=subject,
            recipients=[to],
            html=html,
            sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
        )
        mail.send(msg)
        logger.info(f"Email sent to {to}: {subject}")
        return msg
    except Exception as e:
        logger.error(f"Errore invio email a {to}: {str(e)}")
        raise EmailDeliveryError(str(e)) from e


def send_approval_email(doctor):
    """Notify a doctor that their account has been approved"""
    html = render_template(
        'email/approval.html',
        doctor_name=doctor.full_name,
        login_url=f"{current_app.config.get('APP_URL', '')}/login",
    )
    return send_email(doctor.email, '🎉 La tua richiesta su MedHubb è stata approvata!', html)


def send_password_reset_email(user_name, email, reset_link, user_type):
    """Send a password recovery link"""
    html = render_template(
        'email/password_reset.html',
        user_name=user_name,
        reset_link=reset_link,
        user_type_label='medico' if user_type == 'doctor' else 'paziente',
    )
    return send_email(email, '🔐 Reset Password - MedHubb', html)
