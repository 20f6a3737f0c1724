import logging
import uuid

import requests
from django.conf import settings

from .base import BaseSettlementProvider
from ..errors import SettlementError

logger = logging.getLogger(__name__)


class CustodyApiProvider(BaseSettlementProvider):
    """
    Settlement through an external custody service over HTTP.

    Every call is synchronous and must return ``{"status": "success"}``;
    anything else (HTTP error, timeout, rejected transfer) raises
    ``SettlementError`` so the enclosing escrow operation rolls back.
    """
    name = 'custody_api'

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.base_url = (kwargs.get('base_url') or settings.CUSTODY_API_URL).rstrip('/')
        self.api_key = kwargs.get('api_key') or settings.CUSTODY_API_KEY
        self.timeout = kwargs.get('timeout') or settings.CUSTODY_API_TIMEOUT

    def receive_native(self, sender, amount, reference=''):
        return self._post('/native/receive', {
            'from': sender,
            'to': self.custody_account,
            'amount': str(amount),
            'reference': reference,
        })

    def transfer_native(self, to, amount, reference=''):
        return self._post('/native/transfers', {
            'from': self.custody_account,
            'to': to,
            'amount': str(amount),
            'reference': reference,
        })

    def transfer_token(self, token, to, amount, reference=''):
        return self._post(f'/tokens/{token}/transfers', {
            'from': self.custody_account,
            'to': to,
            'amount': str(amount),
            'reference': reference,
        })

    def transfer_token_from(self, token, owner, to, amount, reference=''):
        return self._post(f'/tokens/{token}/transfer-from', {
            'spender': self.custody_account,
            'from': owner,
            'to': to,
            'amount': str(amount),
            'reference': reference,
        })

    def allowance(self, token, owner, spender):
        url = f"{self.base_url}/tokens/{token}/allowance"
        try:
            response = requests.get(
                url,
                params={'owner': owner, 'spender': spender},
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Custody allowance lookup failed: {str(e)}")
            raise SettlementError("Allowance lookup failed", error=str(e)) from e

        try:
            return int(data.get('data', {}).get('allowance', 0))
        except (TypeError, ValueError) as e:
            raise SettlementError("Malformed allowance response", response=data) from e

    def _headers(self):
        return {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }

    def _post(self, path, payload):
        url = f"{self.base_url}{path}"
        headers = self._headers()
        headers['Idempotency-Key'] = f"escrow-{uuid.uuid4().hex}"

        logger.info(f"Custody request {path}: {payload['amount']} for {payload.get('reference', '')}")
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Custody API request failed: {str(e)}")
            raise SettlementError("Custody request failed", error=str(e)) from e

        if data.get('status') != 'success':
            logger.error(f"Custody API rejected {path}: {data.get('message')}")
            raise SettlementError(data.get('message') or "Custody rejected the transfer", response=data)

        return {
            'status': 'success',
            'reference': payload.get('reference', ''),
            'transfer_id': (data.get('data') or {}).get('transfer_id'),
            'provider': self.name,
        }
