# zerowaste/email.py
from flask import current_app
from flask_mail import Message
from zerowaste import mail


def send_email(to, subject, template):
    """
    Sends an email to a recipient.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=template,
        sender=current_app.config['MAIL_DEFAULT_SENDER']
    )
    mail.send(msg)


def notify_ngo_verified(ngo):
    send_email(
        ngo.email,
        'Your ZeroWaste Rescue NGO account is verified',
        f'<h1>Welcome aboard, {ngo.name}!</h1>'
        '<p>An administrator has verified your organization. You can now claim food listings.</p>'
    )


def notify_ngo_rejected(ngo):
    send_email(
        ngo.email,
        'Your ZeroWaste Rescue NGO registration',
        f'<h1>Hello {ngo.name},</h1>'
        '<p>Unfortunately your organization could not be verified. '
        'Please contact support if you believe this is a mistake.</p>'
    )
