import hashlib
import logging
import requests
from typing import Any, Dict
from fastapi import HTTPException, status
from remie.core.config import get_settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
RRR_GENERATED = "025"
PAID_STATUSES = ("00", "01")


class RemitaService:
    """
    Client for the Remita e-channel API used to issue and check RRRs.
    """

    @staticmethod
    def generate_hash(*parts: Any) -> str:
        """
        Remita request hash: SHA512 of the concatenated parts.
        """
        return hashlib.sha512("".join(str(p) for p in parts).encode("utf-8")).hexdigest()

    @staticmethod
    def format_amount(amount: float) -> str:
        """
        Amounts are hashed as sent: whole naira without a decimal part.
        """
        return str(int(amount)) if float(amount).is_integer() else f"{amount:.2f}"

    @staticmethod
    def payment_init(
            order_id: str,
            amount: float,
            service_type_id: str,
            payer_name: str,
            payer_email: str,
            payer_phone: str,
            description: str,
    ) -> Dict[str, Any]:
        """
        Ask Remita for a new RRR.

        :return: Remita response containing the RRR
        :raises: HTTPException 502 if Remita is unreachable or refuses
        """
        settings = get_settings()
        amount_str = RemitaService.format_amount(amount)
        token = RemitaService.generate_hash(
            settings.REMITA_MERCHANT_ID, service_type_id, order_id, amount_str, settings.REMITA_API_KEY
        )
        url = f"{settings.REMITA_BASE_URL}/exapp/api/v1/send/api/echannelsvc/merchant/api/paymentinit"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"remitaConsumerKey={settings.REMITA_MERCHANT_ID},remitaConsumerToken={token}",
        }
        payload = {
            "serviceTypeId": service_type_id,
            "amount": amount_str,
            "orderId": order_id,
            "payerName": payer_name,
            "payerEmail": payer_email,
            "payerPhone": payer_phone,
            "description": description,
        }

        try:
            response = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("Remita paymentinit failed", extra={"order_id": order_id, "error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to generate RRR"
            )

        if data.get("statuscode") != RRR_GENERATED or not data.get("RRR"):
            logger.warning("Remita refused RRR", extra={"order_id": order_id, "statuscode": data.get("statuscode")})
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to generate RRR"
            )

        return data

    @staticmethod
    def payment_status(rrr: str) -> Dict[str, Any]:
        """
        Look up an RRR's payment status.

        :return: Remita response; `status` is "00" or "01" once paid
        """
        settings = get_settings()
        token = RemitaService.generate_hash(rrr, settings.REMITA_API_KEY, settings.REMITA_MERCHANT_ID)
        url = (
            f"{settings.REMITA_BASE_URL}/exapp/api/v1/send/api/echannelsvc/"
            f"{settings.REMITA_MERCHANT_ID}/{rrr}/{token}/status.reg"
        )

        try:
            response = requests.get(url, headers={"Content-Type": "application/json"}, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("Remita status check failed", extra={"rrr": rrr, "error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to verify RRR"
            )

    @staticmethod
    def is_paid(remita_response: Dict[str, Any]) -> bool:
        return remita_response.get("status") in PAID_STATUSES
