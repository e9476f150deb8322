# ev_admin_system/core/mailer.py

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ev_admin_system.business_logic.errors import InternalError

logger = logging.getLogger(__name__)


class Mailer:
    """Sends account e-mails over SMTP."""

    def __init__(self, host: str, port: int, user: str = "", password: str = "", sender: str = "",
                 timeout: float = 10.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str):
        if not self.host:
            logger.warning(f"SMTP_HOST not configured, e-mail '{subject}' to {to} not sent.")
            return

        msg = MIMEMultipart()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send e-mail to {to}: {e}")
            raise InternalError("Internal Server Error") from e

        logger.info(f"E-mail '{subject}' sent to {to}")

    def send_credentials(self, to: str, username: str, password: str):
        body = (
            "Good day!\n\n"
            "Your Charging Point Operator account has been created.\n\n"
            f"Username: {username}\n"
            f"Password: {password}\n\n"
            "Please change your password after your first login."
        )
        self.send(to, "ParkNCharge Charging Point Operator Credentials", body)
