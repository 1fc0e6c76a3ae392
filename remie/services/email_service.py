import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from remie.core.config import get_settings

logger = logging.getLogger(__name__)


def _layout(title: str, body: str, accent: str = "#10b981") -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background: {accent}; color: white; padding: 30px; text-align: center; border-radius: 8px 8px 0 0; }}
            .content {{ background: #f9fafb; padding: 30px; }}
            .amount {{ font-size: 32px; font-weight: bold; color: {accent}; text-align: center; margin: 20px 0; }}
            .button {{ background: {accent}; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px; display: inline-block; margin: 20px 0; }}
            .footer {{ text-align: center; color: #6b7280; font-size: 12px; padding: 20px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header"><h1>{title}</h1></div>
            <div class="content">{body}</div>
            <div class="footer"><p>&copy; {datetime.utcnow().year} REMIE. All rights reserved.</p></div>
        </div>
    </body>
    </html>
    """


def naira(amount: float) -> str:
    return f"₦{amount:,.2f}"


class EmailService:
    """
    Outgoing transactional email over SMTP.

    Sending is best effort: failures are logged and never propagate to the
    request that triggered the email.
    """

    @staticmethod
    def send_email(to_email: str, subject: str, html_body: str) -> bool:
        """
        Send an HTML email.

        :return: True if the message was handed to the SMTP server
        """
        settings = get_settings()

        if not settings.EMAILS_ENABLED:
            logger.debug("Email disabled, skipping", extra={"to": to_email, "subject": subject})
            return False

        msg = MIMEMultipart()
        msg['From'] = settings.EMAIL_FROM
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(html_body, 'html'))

        try:
            with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT) as server:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Email send failed", extra={"to": to_email, "subject": subject, "error": str(e)})
            return False

        logger.info("Email sent", extra={"to": to_email, "subject": subject})
        return True

    @staticmethod
    def send_welcome(email: str, first_name: str) -> bool:
        body = f"""
            <h2>Hi {first_name},</h2>
            <p>Your REMIE account has been created. An admin will review and
            approve it shortly, after which you can fund your wallet and start
            paying fees, sending money and applying for loans.</p>
        """
        return EmailService.send_email(email, "Welcome to REMIE", _layout("Welcome to REMIE!", body))

    @staticmethod
    def send_password_reset(email: str, first_name: str, reset_url: str) -> bool:
        body = f"""
            <h2>Hi {first_name},</h2>
            <p>We received a request to reset your password.</p>
            <center><a href="{reset_url}" class="button">Reset Password</a></center>
            <p style="color: #6b7280; font-size: 14px;">This link expires in one hour.
            If you didn't request it, you can safely ignore this email.</p>
        """
        return EmailService.send_email(email, "Password Reset Request", _layout("Reset Your Password", body, "#2563eb"))

    @staticmethod
    def send_payment_success(email: str, first_name: str, amount: float, reference: str, payment_type: str) -> bool:
        body = f"""
            <h2>Hi {first_name},</h2>
            <p>Your {payment_type.lower()} was successful.</p>
            <div class="amount">{naira(amount)}</div>
            <p><strong>Reference:</strong> {reference}</p>
        """
        return EmailService.send_email(email, f"{payment_type} Successful - REMIE", _layout("Payment Successful", body))

    @staticmethod
    def send_p2p_received(email: str, first_name: str, amount: float, sender_name: str,
                          description: Optional[str] = None) -> bool:
        note = f"<p><strong>Note:</strong> {description}</p>" if description else ""
        body = f"""
            <h2>Hi {first_name},</h2>
            <p>{sender_name} sent you money on REMIE.</p>
            <div class="amount">{naira(amount)}</div>
            {note}
        """
        return EmailService.send_email(email, "Money Received", _layout("Money Received!", body, "#3b82f6"))

    @staticmethod
    def send_rrr_generated(email: str, first_name: str, rrr: str, amount: float,
                           institution_name: str, description: str) -> bool:
        body = f"""
            <h2>Hi {first_name},</h2>
            <p>Your Remita Retrieval Reference for {institution_name} is ready.</p>
            <div class="amount">{rrr}</div>
            <p><strong>Amount:</strong> {naira(amount)}</p>
            <p><strong>Description:</strong> {description}</p>
            <p>The RRR expires in 7 days.</p>
        """
        return EmailService.send_email(email, "RRR Code Generated", _layout("RRR Generated", body, "#2563eb"))

    @staticmethod
    def send_loan_approved(email: str, first_name: str, amount: float, interest_rate: float,
                           total_repayable: float, due_date: datetime) -> bool:
        body = f"""
            <h2>Hi {first_name},</h2>
            <p>Your loan has been approved and disbursed to your wallet.</p>
            <div class="amount">{naira(amount)}</div>
            <p><strong>Interest rate:</strong> {interest_rate}% per annum</p>
            <p><strong>Total repayable:</strong> {naira(total_repayable)}</p>
            <p><strong>Due date:</strong> {due_date:%d %b %Y}</p>
        """
        return EmailService.send_email(email, "Loan Approved", _layout("Loan Approved", body))

    @staticmethod
    def send_remittance_sent(email: str, sender_name: str, recipient_name: str, amount: float, fee: float,
                             receive_amount: float, currency: str, reference: str, country: str) -> bool:
        body = f"""
            <h2>Hi {sender_name},</h2>
            <p>You have successfully sent money to {recipient_name} in {country}.</p>
            <div class="amount">{naira(amount)}</div>
            <p><strong>Transfer Fee:</strong> {naira(fee)}</p>
            <p><strong>Total Charged:</strong> {naira(amount + fee)}</p>
            <p><strong>Amount Received:</strong> {currency} {receive_amount:.2f}</p>
            <p><strong>Reference:</strong> {reference}</p>
        """
        return EmailService.send_email(email, "Remittance Sent Successfully - REMIE",
                                       _layout("Remittance Sent Successfully", body))

    @staticmethod
    def send_remittance_received(email: str, recipient_name: str, sender_name: str, amount: float,
                                 reference: str, relationship: str) -> bool:
        settings = get_settings()
        body = f"""
            <h2>Hi {recipient_name},</h2>
            <p>You have received money from {sender_name} ({relationship}).</p>
            <div class="amount">{naira(amount)}</div>
            <p><strong>Reference:</strong> {reference}</p>
            <p>The money has been credited to your REMIE wallet and is ready to use.</p>
            <center><a href="{settings.FRONTEND_URL}/dashboard" class="button">View Wallet</a></center>
        """
        return EmailService.send_email(email, "Money Received - REMIE", _layout("Money Received!", body, "#3b82f6"))

    @staticmethod
    def send_recipient_welcome(email: str, recipient_name: str, sender_name: str, reset_url: str) -> bool:
        body = f"""
            <h2>Hi {recipient_name},</h2>
            <p>{sender_name} has sent you money through REMIE, and we've created an account for you.</p>
            <p>To access your funds and set up your password, please click the button below:</p>
            <center><a href="{reset_url}" class="button">Set Your Password</a></center>
            <p style="color: #6b7280; font-size: 14px;">This link will expire in 7 days.</p>
        """
        return EmailService.send_email(email, "Welcome to REMIE - Set Your Password",
                                       _layout("Welcome to REMIE!", body))

    @staticmethod
    def send_notification(email: str, first_name: str, title: str, message: str) -> bool:
        body = f"""
            <h2>Hi {first_name},</h2>
            <p>{message}</p>
        """
        return EmailService.send_email(email, title, _layout(title, body, "#2563eb"))
