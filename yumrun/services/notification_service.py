# Notification service for email and SMS
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from twilio.rest import Client
from twilio.base.exceptions import TwilioException
from flask import current_app

STATUS_MESSAGES = {
    'CONFIRMED': 'has been confirmed',
    'PREPARING': 'is being prepared',
    'READY': 'is ready for pickup',
    'OUT_FOR_DELIVERY': 'is out for delivery',
    'DELIVERED': 'has been delivered',
    'CANCELLED': 'has been cancelled'
}


class NotificationService:
    def __init__(self, config=None):
        config = config or current_app.config

        # Email configuration
        self.smtp_server = config.get('SMTP_SERVER') or 'smtp.gmail.com'
        self.smtp_port = int(config.get('SMTP_PORT') or 587)
        self.smtp_username = config.get('SMTP_USERNAME')
        self.smtp_password = config.get('SMTP_PASSWORD')
        self.from_email = config.get('FROM_EMAIL') or 'noreply@yumrun.com'
        self.frontend_url = config.get('FRONTEND_URL', '')

        # SMS configuration (Twilio)
        self.twilio_phone_number = config.get('TWILIO_PHONE_NUMBER')
        self.twilio_client = None
        account_sid = config.get('TWILIO_ACCOUNT_SID')
        auth_token = config.get('TWILIO_AUTH_TOKEN')
        if account_sid and auth_token:
            try:
                self.twilio_client = Client(account_sid, auth_token)
            except TwilioException as e:
                current_app.logger.warning(f"Failed to initialize Twilio client: {e}")

    def send_email(self, to_email, subject, body):
        """Send email notification"""
        if not self.smtp_username or not self.smtp_password:
            current_app.logger.warning("SMTP credentials not configured, skipping email")
            return False

        msg = MIMEMultipart()
        msg['From'] = self.from_email
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'html'))

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            current_app.logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        current_app.logger.info(f"Email sent successfully to {to_email}")
        return True

    def send_sms(self, to_phone, message):
        """Send SMS notification"""
        if not self.twilio_client:
            current_app.logger.warning("Twilio client not configured, skipping SMS")
            return False

        try:
            self.twilio_client.messages.create(
                body=message,
                from_=self.twilio_phone_number,
                to=to_phone
            )
        except TwilioException as e:
            current_app.logger.error(f"Failed to send SMS to {to_phone}: {e}")
            return False

        current_app.logger.info(f"SMS sent successfully to {to_phone}")
        return True

    def send_order_confirmation(self, order):
        """Send order placed notifications to the customer"""
        user = order.user
        restaurant_name = order.restaurant.name if order.restaurant else 'YumRun'
        total = order.grand_total or 0

        email_subject = f"Order Placed - #{order.order_number}"
        email_body = f"""
        <html>
        <body>
            <h2>Order Confirmation</h2>
            <p>Dear {user.first_name},</p>
            <p>We have received your order.</p>
            <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">
                <h3>Order Details:</h3>
                <p><strong>Order Number:</strong> #{order.order_number}</p>
                <p><strong>Restaurant:</strong> {restaurant_name}</p>
                <p><strong>Total Amount:</strong> Rs. {total:.2f}</p>
                <p><strong>Payment:</strong> {order.payment_method}</p>
            </div>
            <p>You will receive updates as your order progresses.</p>
            <p>Thank you for choosing YumRun!</p>
        </body>
        </html>
        """
        sms_message = (
            f"YumRun: Order #{order.order_number} placed! Total: Rs. {total:.2f}. "
            f"Track: {self.frontend_url}/orders/{order.id}"
        )

        return {
            'email_sent': self.send_email(user.email, email_subject, email_body),
            'sms_sent': self.send_sms(user.phone, sms_message) if user.phone else False
        }

    def send_order_status_update(self, order):
        """Send order status update notifications"""
        user = order.user
        new_status = order.status
        status_message = STATUS_MESSAGES.get(new_status, 'status has been updated')
        closing = (
            "<p>We hope you enjoyed your meal! Please rate your experience.</p>"
            if new_status == 'DELIVERED'
            else "<p>You can track your order in real-time through our app.</p>"
        )

        email_subject = f"Order Update - #{order.order_number}"
        email_body = f"""
        <html>
        <body>
            <h2>Order Status Update</h2>
            <p>Dear {user.first_name},</p>
            <p>Your order #{order.order_number} {status_message}.</p>
            <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">
                <p><strong>Order Number:</strong> #{order.order_number}</p>
                <p><strong>New Status:</strong> {new_status.replace('_', ' ').title()}</p>
            </div>
            {closing}
            <p>Thank you for choosing YumRun!</p>
        </body>
        </html>
        """
        sms_message = f"YumRun: Order #{order.order_number} {status_message}."

        return {
            'email_sent': self.send_email(user.email, email_subject, email_body),
            'sms_sent': self.send_sms(user.phone, sms_message) if user.phone else False
        }
