"""
app/services/momo_service.py

Purpose: MTN MoMo collection API client

- Bearer token acquisition with expiry buffer
- Request-to-pay submission (202 Accepted = submitted)
- Status lookup and diagnostics (not used by reconciliation)
"""

import time
import uuid
import httpx
from typing import Dict, Any, Optional

from app.core.config import settings
from app.core.logging import get_logger
from utils.validation_utils import format_msisdn

logger = get_logger(__name__)

TOKEN_EXPIRY_BUFFER_SECONDS = 300


class MomoService:
    """Service for the MoMo collection product"""

    def __init__(self):
        self._token: Optional[str] = None
        self._token_expires_at: float = 0.0

    @property
    def base_url(self) -> str:
        return settings.momo_base_url

    def is_configured(self) -> bool:
        return bool(
            settings.MOMO_API_USER_ID
            and settings.MOMO_API_KEY
            and settings.MOMO_SUBSCRIPTION_KEY
        )

    def _base_headers(self) -> Dict[str, str]:
        return {
            "Ocp-Apim-Subscription-Key": settings.MOMO_SUBSCRIPTION_KEY or "",
            "X-Target-Environment": settings.momo_target_environment,
        }

    def has_valid_token(self) -> bool:
        return bool(self._token) and time.time() < self._token_expires_at - TOKEN_EXPIRY_BUFFER_SECONDS

    async def get_token(self) -> Dict[str, Any]:
        """
        Returns a cached bearer token or fetches a new one.

        Returns:
            {"success": True, "token": "..."} or {"success": False, "error": "..."}
        """
        if self.has_valid_token():
            return {"success": True, "token": self._token}

        url = f"{self.base_url}/collection/token/"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    headers=self._base_headers(),
                    auth=(settings.MOMO_API_USER_ID or "", settings.MOMO_API_KEY or ""),
                    timeout=settings.MOMO_TIMEOUT_SECONDS
                )

            if response.status_code == 200 and response.json().get("access_token"):
                data = response.json()
                self._token = data["access_token"]
                self._token_expires_at = time.time() + int(data.get("expires_in", 3600))
                logger.info("🔑 Fetched new MoMo access token")
                return {"success": True, "token": self._token}

            self._token = None
            self._token_expires_at = 0.0
            logger.error(f"❌ MoMo token error: {response.status_code} - {response.text}")
            return {"success": False, "error": f"Token request failed: {response.status_code}"}

        except httpx.TimeoutException:
            logger.error("MoMo token request timeout")
            return {"success": False, "error": "MoMo token request timeout"}
        except Exception as e:
            logger.error(f"Error fetching MoMo token: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def request_to_pay(
        self,
        phone_number: str,
        amount: str,
        currency: str,
        reference_id: str,
        plan_type: str,
        payer_identity: str
    ) -> Dict[str, Any]:
        """
        Submits a request-to-pay.

        Args:
            phone_number: Local payer number (092xxxxxxx)
            amount: Amount as a string, as the API expects
            currency: ISO currency code
            reference_id: UUID sent as X-Reference-Id
            plan_type: Used for payer message / payee note
            payer_identity: Messenger identity, for the payee note

        Returns:
            {
                "success": True/False,
                "external_id": "uuid",
                "status_code": 202,
                "error": "Optional error message"
            }
        """
        token_result = await self.get_token()
        if not token_result["success"]:
            return {"success": False, "error": token_result["error"]}

        external_id = str(uuid.uuid4())
        url = f"{self.base_url}/collection/v1_0/requesttopay"

        headers = {
            **self._base_headers(),
            "Authorization": f"Bearer {token_result['token']}",
            "X-Reference-Id": reference_id,
            "Content-Type": "application/json",
        }
        if settings.CALLBACK_HOST:
            headers["X-Callback-Url"] = f"{settings.CALLBACK_HOST.rstrip('/')}/momo/callback"

        body = {
            "amount": amount,
            "currency": currency,
            "externalId": external_id,
            "payer": {
                "partyIdType": "MSISDN",
                "partyId": format_msisdn(phone_number),
            },
            "payerMessage": f"Answer Bot AI {plan_type} subscription",
            "payeeNote": f"{plan_type} plan for user {payer_identity[-8:]}",
        }

        logger.info(f"💳 Submitting request-to-pay {reference_id} ({amount} {currency})")

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    headers=headers,
                    json=body,
                    timeout=settings.MOMO_TIMEOUT_SECONDS
                )

            if response.status_code == 202:
                logger.info(f"✅ Request-to-pay accepted: {reference_id}")
                return {
                    "success": True,
                    "external_id": external_id,
                    "status_code": response.status_code,
                }

            logger.error(f"❌ Request-to-pay rejected: {response.status_code} - {response.text}")
            return {
                "success": False,
                "status_code": response.status_code,
                "error": f"MoMo API error: {response.status_code}"
            }

        except httpx.TimeoutException:
            logger.error("MoMo request-to-pay timeout")
            return {"success": False, "error": "MoMo API timeout"}
        except Exception as e:
            logger.error(f"Error submitting request-to-pay: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def get_payment_status(self, reference_id: str) -> Dict[str, Any]:
        """
        Looks up a request-to-pay by reference (diagnostics only).
        """
        token_result = await self.get_token()
        if not token_result["success"]:
            return {"success": False, "error": token_result["error"]}

        url = f"{self.base_url}/collection/v1_0/requesttopay/{reference_id}"
        headers = {**self._base_headers(), "Authorization": f"Bearer {token_result['token']}"}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, headers=headers, timeout=settings.MOMO_TIMEOUT_SECONDS)

            if response.status_code == 200:
                data = response.json()
                return {
                    "success": True,
                    "status": data.get("status"),
                    "reason": data.get("reason"),
                    "data": data,
                }

            return {"success": False, "error": f"MoMo API error: {response.status_code}"}

        except httpx.TimeoutException:
            return {"success": False, "error": "MoMo API timeout"}
        except Exception as e:
            logger.error(f"Error checking payment status: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def diagnose(self) -> Dict[str, Any]:
        """
        Checks configuration and authentication against the gateway.
        """
        results: Dict[str, Any] = {
            "environment": settings.MOMO_ENVIRONMENT,
            "target_environment": settings.momo_target_environment,
            "base_url": self.base_url,
            "configured": self.is_configured(),
            "callback_host": settings.CALLBACK_HOST,
            "authentication_works": False,
            "errors": [],
        }

        if not results["configured"]:
            results["errors"].append("Missing MoMo API user, API key or subscription key")
        else:
            token_result = await self.get_token()
            results["authentication_works"] = token_result["success"]
            if not token_result["success"]:
                results["errors"].append(f"Authentication failed: {token_result['error']}")

        results["overall_status"] = "healthy" if results["authentication_works"] else "issues_detected"
        logger.info(f"🩺 MoMo diagnostics: {results['overall_status']}")
        return results

    def health(self) -> Dict[str, Any]:
        return {
            "configured": self.is_configured(),
            "environment": settings.MOMO_ENVIRONMENT,
            "base_url": self.base_url,
            "token_cached": self.has_valid_token(),
        }


# Singleton instance
momo_service = MomoService()
