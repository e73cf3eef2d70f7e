import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from markupsafe import escape

from portfolio.errors import MailTransportError


class SmtpMailer:
    """Sends one message per SMTP connection, so instances are safe to share across threads."""

    def __init__(self, host, port, username, password, sender, timeout=30):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.timeout = timeout

    @property
    def configured(self):
        return bool(self.host and self.username and self.password)

    def _create_smtp(self):
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls()
        server.login(self.username, self.password)
        return server

    def send(self, to, subject, text, html, reply_to=None):
        """Send a multipart/alternative email. Raises MailTransportError on failure."""
        if not self.configured:
            raise MailTransportError(to, "SMTP is not configured")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        try:
            server = self._create_smtp()
            try:
                server.sendmail(self.sender, to, msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportError(to, str(e)) from e


def unsubscribe_url(base_url, token):
    return f"{base_url.rstrip('/')}/unsubscribe/{token}"


def _footer(unsubscribe_link):
    return f"""
        <p style="margin-top: 30px; font-size: 12px; color: #888;">
            Don't want these emails anymore?
            <a href="{escape(unsubscribe_link)}" style="color: #888;">Unsubscribe</a>
        </p>
    """


def compose_welcome(subscriber, base_url, site_name):
    """Returns (subject, text, html) for the welcome email."""
    link = unsubscribe_url(base_url, subscriber["unsubscribe_token"])
    subject = f"Welcome to {site_name}"
    text = (
        f"Hi {subscriber['name']},\n\n"
        f"Thanks for subscribing. You'll get an email whenever new work is added to {site_name}.\n\n"
        f"Unsubscribe: {link}"
    )
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 500px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #333;">Thanks for subscribing, {escape(subscriber['name'])}!</h2>
        <p>You'll get an email whenever new work is added to {escape(site_name)}.</p>
        {_footer(link)}
    </div>
    """
    return subject, text, html


def compose_new_artwork(subscriber, kind, base_url, site_name):
    """Returns (subject, text, html) for a new-artwork notice to one subscriber."""
    link = unsubscribe_url(base_url, subscriber["unsubscribe_token"])
    site = base_url.rstrip("/") + "/"
    subject = f"New {kind} added to {site_name}"
    text = (
        f"Hi {subscriber['name']},\n\n"
        f"A new {kind} was just added to {site_name}. Take a look: {site}\n\n"
        f"Unsubscribe: {link}"
    )
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 500px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #333;">New {escape(kind)} in the portfolio</h2>
        <p>Hi {escape(subscriber['name'])}, a new {escape(kind)} was just added to {escape(site_name)}.</p>
        <p style="margin-top: 20px;">
            <a href="{escape(site)}"
               style="background: #4A90D9; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">
                View Portfolio
            </a>
        </p>
        {_footer(link)}
    </div>
    """
    return subject, text, html


def compose_inquiry(name, email, message):
    """Returns (subject, text, html) for a contact form submission."""
    subject = f"New Inquiry from {name}"
    text = f"{message}\n\nFrom: {name} <{email}>"
    body = str(escape(message)).replace("\n", "<br>")
    html = f"""
        <h3>New Contact Form Submission</h3>
        <p><strong>Name:</strong> {escape(name)}</p>
        <p><strong>Email:</strong> {escape(email)}</p>
        <p><strong>Message:</strong></p>
        <p>{body}</p>
    """
    return subject, text, html
