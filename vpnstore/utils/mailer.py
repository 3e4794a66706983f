# vpnstore/utils/mailer.py
import logging
from threading import Thread

from flask import current_app, render_template_string
from flask_mail import Message

from vpnstore.extensions import mail

log = logging.getLogger(__name__)


_CREDENTIALS_HTML = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #00d4ff;">Your VPN account details</h2>
  <p>Order #{{ order_id }} is complete. Your login details are below.</p>
  <div style="background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <p><strong>Username:</strong> {{ creds.username }}</p>
    <p><strong>Password:</strong> {{ creds.password }}</p>
    <p><strong>Server Info:</strong> {{ creds.serverInfo }}</p>
    {% if creds.expiryDate %}<p><strong>Expiry Date:</strong> {{ creds.expiryDate }}</p>{% endif %}
  </div>
  <ul>
    <li>Keep these credentials somewhere safe.</li>
    <li>Do not share them with anyone else.</li>
  </ul>
  <p>Thank you,<br>{{ site_name }}</p>
</div>
"""

_CONFIRMATION_HTML = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #00d4ff;">Order confirmation</h2>
  <p>Your payment for order #{{ order_id }} has been verified.</p>
  <div style="background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <p><strong>Total Amount:</strong> {{ total }} Ks</p>
    <p><strong>Status:</strong> {{ status }}</p>
  </div>
  <p>Your VPN credentials will follow in a separate email.</p>
  <p>Thank you,<br>{{ site_name }}</p>
</div>
"""


def _deliver(app, msg: Message) -> None:
    with app.app_context():
        try:
            mail.send(msg)
            log.info("mail: sent '%s' to %s", msg.subject, msg.recipients)
        except Exception as e:
            log.exception("mail: failed '%s' to %s: %s", msg.subject, msg.recipients, e)


def send_email(subject: str, recipients: list[str], body: str, html: str | None = None) -> bool:
    """
    Queue or send one message. Never raises; returns False only when the
    message could not even be built or a synchronous send failed.
    """
    try:
        msg = Message(subject=subject, recipients=list(recipients))
        msg.sender = current_app.config.get("MAIL_DEFAULT_SENDER")
        msg.body = body
        if html:
            msg.html = html
    except Exception as e:
        log.exception("mail: could not build '%s': %s", subject, e)
        return False

    app = current_app._get_current_object()
    if app.config.get("MAIL_ASYNC"):
        Thread(target=_deliver, args=(app, msg), daemon=True).start()
        return True

    try:
        mail.send(msg)
        log.info("mail: sent '%s' to %s", subject, recipients)
        return True
    except Exception as e:
        log.exception("mail: failed '%s' to %s: %s", subject, recipients, e)
        return False


def _site_name() -> str:
    try:
        from vpnstore.services.settings import get_settings
        return get_settings().site_name or "VPN Key Store"
    except Exception:
        log.warning("mail: settings unavailable, using default site name")
        return "VPN Key Store"


def send_vpn_credentials_email(to: str, order) -> bool:
    creds = order.vpn_credentials or {}
    site_name = _site_name()
    body = (
        f"Order #{order.id} is complete.\n\n"
        f"Username: {creds.get('username')}\n"
        f"Password: {creds.get('password')}\n"
        f"Server Info: {creds.get('serverInfo')}\n"
        f"Expiry Date: {creds.get('expiryDate') or '-'}\n\n"
        f"Thank you,\n{site_name}"
    )
    try:
        html = render_template_string(_CREDENTIALS_HTML, order_id=order.id, creds=creds, site_name=site_name)
    except Exception:
        log.exception("mail: credentials template failed for order %s", order.id)
        html = None
    return send_email(f"Your VPN account details - {site_name}", [to], body, html)


def send_order_confirmation_email(to: str, order) -> bool:
    site_name = _site_name()
    body = (
        f"Your payment for order #{order.id} has been verified.\n"
        f"Total Amount: {order.total} Ks\n\n"
        f"Thank you,\n{site_name}"
    )
    try:
        html = render_template_string(
            _CONFIRMATION_HTML, order_id=order.id, total=order.total, status=order.status, site_name=site_name
        )
    except Exception:
        log.exception("mail: confirmation template failed for order %s", order.id)
        html = None
    return send_email(f"Order Confirmation - {site_name}", [to], body, html)
