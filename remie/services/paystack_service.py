import logging
import requests
import hmac
import hashlib
from typing import Any, Dict, List, Optional
from remie.core.config import get_settings
from fastapi import HTTPException, status
import secrets
import time

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30


class PaystackService:
    """
    Service for Paystack payment integration

    Handles:
    - Transaction initialization and verification (card funding)
    - Webhook signature verification
    - Bank lookups and transfers (withdrawals)
    """

    @staticmethod
    def generate_reference(prefix: str = "REMIE") -> str:
        """
        Generate a unique transaction reference.

        :return: Reference of the form REMIE_<ms>_<hex>
        """
        return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"

    @staticmethod
    def _headers() -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {get_settings().PAYSTACK_SECRET_KEY}",
            "Content-Type": "application/json"
        }

    @staticmethod
    def _request(method: str, path: str, action: str, **kwargs) -> Any:
        """
        Call the Paystack API and return the `data` member of its envelope.

        :param method: HTTP method
        :param path: Path below the Paystack base URL
        :param action: Human-readable action for error messages
        :raises: HTTPException 400 if Paystack rejects the call, 502 if it is unreachable
        """
        url = f"{get_settings().PAYSTACK_BASE_URL}{path}"
        try:
            response = requests.request(
                method, url, headers=PaystackService._headers(), timeout=REQUEST_TIMEOUT, **kwargs
            )
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("Paystack request failed", extra={"path": path, "error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to {action}: {str(e)}"
            )

        if not response.ok or not data.get("status"):
            logger.warning("Paystack rejected request", extra={"path": path, "message": data.get("message")})
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Paystack error: {data.get('message', 'Unknown error')}"
            )

        return data.get("data")

    @staticmethod
    def initialize_transaction(
            email: str,
            amount: float,
            reference: Optional[str] = None,
            callback_url: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Initialize a Paystack transaction.

        :param email: Customer's email
        :param amount: Amount in Naira (will be converted to kobo)
        :param reference: Optional custom reference
        :param callback_url: Where Paystack sends the customer afterwards
        :param metadata: Passed through to Paystack and back in webhooks
        :return: Paystack data with reference, authorization_url and access_code
        :raises: HTTPException: If Paystack API call fails
        """
        if not reference:
            reference = PaystackService.generate_reference()

        payload = {
            "email": email,
            "amount": PaystackService.naira_to_kobo(amount),
            "reference": reference,
            "callback_url": callback_url or get_settings().PAYSTACK_CALLBACK_URL,
            "metadata": metadata or {},
        }
        return PaystackService._request("POST", "/transaction/initialize", "initialize Paystack transaction", json=payload)

    @staticmethod
    def verify_transaction(reference: str) -> Dict[str, Any]:
        """
        Verify a transaction with Paystack.

        The webhook normally completes funding; this is the fallback used by
        the frontend callback page.

        :param reference: Payment reference
        :return: Transaction data from Paystack
        :raises: HTTPException: If verification fails
        """
        return PaystackService._request("GET", f"/transaction/verify/{reference}", "verify Paystack transaction")

    @staticmethod
    def list_banks() -> List[Dict[str, Any]]:
        return PaystackService._request("GET", "/bank", "fetch banks", params={"country": "nigeria"})

    @staticmethod
    def resolve_account(account_number: str, bank_code: str) -> Dict[str, Any]:
        """
        Look up the account name for a NUBAN.

        :return: Paystack data with account_number, account_name and bank_id
        """
        return PaystackService._request(
            "GET",
            "/bank/resolve",
            "resolve account",
            params={"account_number": account_number, "bank_code": bank_code},
        )

    @staticmethod
    def create_transfer_recipient(account_name: str, account_number: str, bank_code: str) -> str:
        """
        Register a bank account as a transfer recipient.

        :return: Paystack recipient code
        """
        data = PaystackService._request(
            "POST",
            "/transferrecipient",
            "create transfer recipient",
            json={
                "type": "nuban",
                "name": account_name,
                "account_number": account_number,
                "bank_code": bank_code,
                "currency": "NGN",
            },
        )
        return data["recipient_code"]

    @staticmethod
    def initiate_transfer(amount: float, recipient_code: str, reference: str, reason: str) -> Dict[str, Any]:
        """
        Send money from the Paystack balance to a transfer recipient.

        :return: Paystack data with transfer_code and status
        """
        return PaystackService._request(
            "POST",
            "/transfer",
            "initiate transfer",
            json={
                "source": "balance",
                "amount": PaystackService.naira_to_kobo(amount),
                "recipient": recipient_code,
                "reference": reference,
                "reason": reason,
            },
        )

    @staticmethod
    def verify_webhook_signature(payload: bytes, signature: str) -> bool:
        """
        Verify that a webhook request came from Paystack.

        Paystack signs all webhook requests with HMAC SHA512 of the raw body.

        :param payload: Raw request body
        :param signature: Signature from 'x-paystack-signature' header
        :return: True if signature is valid, False otherwise
        """
        computed_signature = hmac.new(
            get_settings().PAYSTACK_SECRET_KEY.encode('utf-8'),
            payload,
            hashlib.sha512
        ).hexdigest()

        return hmac.compare_digest(computed_signature, signature)

    @staticmethod
    def kobo_to_naira(amount_in_kobo: int) -> float:
        """
        Convert amount from kobo to naira.

        :param amount_in_kobo: Amount in kobo
        :return: Amount in naira
        """
        return amount_in_kobo / 100.0

    @staticmethod
    def naira_to_kobo(amount_in_naira: float) -> int:
        """
        Convert amount from naira to kobo.

        :param amount_in_naira: Amount in naira
        :return: Amount in kobo
        """
        return int(round(amount_in_naira * 100))
