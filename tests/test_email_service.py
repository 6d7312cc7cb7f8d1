import pytest
from medhubb.utils.email_service import (
    EmailDeliveryError, mail, send_email, send_approval_email, send_password_reset_email
)


def test_send_email_records_message(app_context):
    with mail.record_messages() as outbox:
        send_email('someone@example.com', 'Oggetto', '<p>Ciao</p>')
    assert len(outbox) == 1
    assert outbox[0].sender == 'MedHubb Team <noreply@medhubb.app>'
    assert outbox[0].html == '<p>Ciao</p>'


def test_send_email_wraps_failures(app_context, monkeypatch):
    def broken_send(message):
        raise OSError('connection refused')

    monkeypatch.setattr(mail, 'send', broken_send)
    with pytest.raises(EmailDeliveryError):
        send_email('someone@example.com', 'Oggetto', '<p>Ciao</p>')


def test_approval_email_content(approved_doctor):
    with mail.record_messages() as outbox:
        send_approval_email(approved_doctor)
    message = outbox[0]
    assert message.recipients == ['dottore@example.com']
    assert message.subject == '🎉 La tua richiesta su MedHubb è stata approvata!'
    assert 'Luca Verdi' in message.html


@pytest.mark.parametrize("user_type,label", [('doctor', 'medico'), ('patient', 'paziente')])
def test_password_reset_email_content(app_context, user_type, label):
    with mail.record_messages() as outbox:
        send_password_reset_email('Giulia Bianchi', 'giulia@example.com',
                                  'http://localhost:3000/reset-password?token=abc', user_type)
    message = outbox[0]
    assert message.subject == '🔐 Reset Password - MedHubb'
    assert 'Giulia Bianchi' in message.html
    assert 'token=abc' in message.html
    assert label in message.html
