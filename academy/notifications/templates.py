"""
Email bodies for registration verification, learner welcome and contact form mails
"""

from html import escape
from typing import Optional, Tuple

WRAPPER_STYLE = "font-family: system-ui, -apple-system, 'Segoe UI', Roboto, Arial; max-width: 600px; margin: 0 auto;"


def format_inr(amount) -> str:
    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        value = 0.0
    if value.is_integer():
        return f"₹{int(value):,}"
    return f"₹{value:,.2f}"


def verification_email(
    registration: dict,
    action: str,
    admin: str,
    notes: Optional[str] = None,
) -> Tuple[str, str, str]:
    """
    Build (subject, text, html) for a verify/reject decision.

    action is "verified" or "rejected".
    """
    course = registration.get("course") or "your course"
    name = registration.get("name") or "Student"
    proof = registration.get("paymentProof") or {}
    txn_id = proof.get("txnId") or "N/A"
    screenshot = proof.get("screenshot")
    amount = format_inr(registration.get("amount"))

    if action == "verified":
        subject = f'Your registration for "{course}" is confirmed'
        heading = "Payment verified ✅"
    else:
        subject = f'Your registration for "{course}" was rejected'
        heading = "Registration rejected ❌"

    text = f'Your registration for "{course}" has been {action}. Transaction ID: {txn_id}'
    if notes:
        text += f"\nAdmin notes: {notes}"

    notes_html = f"<p><strong>Admin notes:</strong><br/>{escape(notes)}</p>" if notes else ""
    screenshot_html = (
        f'<p><a href="{escape(screenshot, quote=True)}" target="_blank" rel="noopener">View payment screenshot</a></p>'
        if screenshot
        else ""
    )
    html = f"""
    <div style="{WRAPPER_STYLE}">
      <h2>{heading}</h2>
      <p>Hi {escape(name)},</p>
      <p>Your registration for <strong>{escape(course)}</strong> (amount: {amount}) has been <strong>{action}</strong> by {escape(admin)}.</p>
      {notes_html}
      <p>Transaction ID: <strong>{escape(txn_id)}</strong></p>
      {screenshot_html}
      <p style="margin-top:18px;">Regards,<br/>RhinoGeeks Team</p>
    </div>
    """
    return subject, text, html


def welcome_email(to: str, password_plain: str, name: Optional[str] = None) -> Tuple[str, str, str]:
    subject = "Welcome: your student account"
    text = (
        f"Welcome. Login: {to}\n"
        f"Temporary password: {password_plain}\n"
        "Please change your password after logging in."
    )
    html = f"""
    <div style="{WRAPPER_STYLE}">
      <h2>Welcome to RhinoGeeks: your student account</h2>
      <p>Hi {escape(name or "Student")},</p>
      <p>An account has been created for you so you can access course materials and the student dashboard.</p>
      <p><strong>Login</strong>: {escape(to)}</p>
      <p><strong>Temporary password</strong>: <code>{escape(password_plain)}</code></p>
      <p><strong>Important:</strong> please change your password after logging in. If you did not expect this account, contact support.</p>
      <p>Regards,<br/>Team</p>
    </div>
    """
    return subject, text, html


def delivery_check_email() -> Tuple[str, str, str]:
    subject = "Test email from Academy"
    text = "This is a test email. If you can read it, delivery works."
    html = f'<div style="{WRAPPER_STYLE}"><p>{text}</p></div>'
    return subject, text, html


def contact_email(name: str, email: str, message: str) -> Tuple[str, str, str]:
    subject = f"Contact form: {name} ({email})"
    text = f"Contact form submission\n\nName: {name}\nEmail: {email}\n\nMessage:\n{message}"
    html = (
        f"<p><strong>Name:</strong> {escape(name)}</p>"
        f"<p><strong>Email:</strong> {escape(email)}</p>"
        "<p><strong>Message:</strong></p>"
        f'<pre style="white-space:pre-wrap">{escape(message)}</pre>'
    )
    return subject, text, html
