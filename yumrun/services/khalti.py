"""
Client for the Khalti ePayment gateway (initiate / lookup)
"""
import logging
import requests
from flask import current_app
from yumrun.utils.errors import PaymentGatewayError

logger = logging.getLogger(__name__)

# Khalti lookup status -> payment_details.status
STATUS_MAP = {
    'Completed': 'completed',
    'Pending': 'pending',
    'Initiated': 'pending',
    'Expired': 'failed',
    'User canceled': 'failed',
    'Refunded': 'refunded',
}

# Khalti lookup status -> Order.payment_status
ORDER_PAYMENT_STATUS_MAP = {
    'Completed': 'PAID',
    'Pending': 'PENDING',
    'Initiated': 'PENDING',
    'Expired': 'FAILED',
    'User canceled': 'FAILED',
    'Refunded': 'REFUNDED',
}

# Khalti lookup status -> Payment.status
PAYMENT_RECORD_STATUS_MAP = {
    'Completed': 'Completed',
    'Pending': 'Pending',
    'Initiated': 'Pending',
    'Expired': 'Failed',
    'User canceled': 'Failed',
    'Refunded': 'Refunded',
}


def to_paisa(amount):
    """Khalti expects amounts in the smallest currency unit"""
    return int(round(float(amount) * 100))


def map_khalti_status(khalti_status):
    internal = STATUS_MAP.get(khalti_status)
    if internal is None:
        logger.warning(f"Unknown Khalti verification status: {khalti_status}")
        return 'failed'
    return internal


class KhaltiClient:
    def __init__(self, secret_key=None, base_url=None, timeout=None):
        self.secret_key = secret_key
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout or 15

    @classmethod
    def from_app(cls):
        config = current_app.config
        return cls(
            secret_key=config.get('KHALTI_SECRET_KEY'),
            base_url=config.get('KHALTI_BASE_URL'),
            timeout=config.get('KHALTI_TIMEOUT')
        )

    @property
    def headers(self):
        return {
            'Authorization': f'Key {self.secret_key}',
            'Content-Type': 'application/json'
        }

    def _post(self, path, payload):
        if not self.secret_key:
            raise PaymentGatewayError('Khalti is not configured')

        url = f'{self.base_url}/{path.lstrip("/")}'
        try:
            response = requests.post(url, json=payload, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Khalti request to {path} failed: {e}")
            raise PaymentGatewayError(f'Khalti request failed: {e}')

        if response.status_code >= 400:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            logger.error(f"Khalti API error on {path}: {response.status_code} - {detail}")
            raise PaymentGatewayError(f'Khalti API error ({response.status_code})')

        try:
            return response.json()
        except ValueError:
            raise PaymentGatewayError('Khalti returned an invalid response')

    def initiate(self, amount, purchase_order_id, purchase_order_name, return_url, website_url,
                 customer_info=None):
        """Start a payment; returns Khalti's ``pidx`` and ``payment_url``"""
        payload = {
            'return_url': return_url,
            'website_url': website_url,
            'amount': to_paisa(amount),
            'purchase_order_id': purchase_order_id,
            'purchase_order_name': purchase_order_name,
            'customer_info': customer_info or {}
        }
        logger.info(f"Initiating Khalti payment for {purchase_order_id} ({payload['amount']} paisa)")
        data = self._post('/epayment/initiate/', payload)
        if not data.get('pidx') or not data.get('payment_url'):
            raise PaymentGatewayError('Khalti did not return a payment session')
        return data

    def lookup(self, pidx):
        """Fetch the current state of a payment session"""
        logger.info(f"Looking up Khalti payment {pidx}")
        return self._post('/epayment/lookup/', {'pidx': pidx})
