# services/moov.py
"""
Moov REST client.

Every call is two explicit steps: exchange the platform keys for a scoped
OAuth2 bearer token (``fetch_access_token`` -> ``MoovToken``), then make the
API call with that token. A failure in either step raises ``MoovError`` that
names the step, and nothing is retried.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import httpx

from tenantry.core.config import settings
from tenantry.core.errors import UpstreamFailure

logger = logging.getLogger("tenantry.moov")


class MoovError(UpstreamFailure):
    public_message = "Payment processor request failed"

    def __init__(self, step: str, detail: str, response_status: Optional[int] = None):
        self.step = step
        self.response_status = response_status
        super().__init__(detail=f"moov {step}: {detail}")


@dataclass(frozen=True)
class MoovToken:
    access_token: str
    scopes: tuple
    expires_in: Optional[int] = None
    token_type: str = "Bearer"

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"


@dataclass
class CapabilityResult:
    account_id: str
    requested: List[str]
    response: dict
    current: List[dict] = field(default_factory=list)


class MoovClient:
    def __init__(
        self,
        domain: str,
        public_key: str,
        secret_key: str,
        account_id: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.domain = domain.rstrip("/")
        self.public_key = public_key
        self.secret_key = secret_key
        self.account_id = account_id
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.domain, timeout=self.timeout, transport=self._transport)

    # ------------------------------------------------------------
    # Step 1: token
    # ------------------------------------------------------------
    async def fetch_access_token(self, scopes: Sequence[str]) -> MoovToken:
        form = {
            "grant_type": "client_credentials",
            "client_id": self.public_key,
            "client_secret": self.secret_key,
            "scope": " ".join(scopes),
        }
        try:
            async with self._client() as client:
                resp = await client.post("/oauth2/token", data=form)
        except httpx.RequestError as e:
            logger.error(f"Moov token request failed: {e}")
            raise MoovError("token", str(e))

        if resp.status_code != 200:
            logger.error(f"Moov token error {resp.status_code}: {resp.text}")
            raise MoovError("token", f"HTTP {resp.status_code}", resp.status_code)

        data = resp.json()
        if not data.get("access_token"):
            raise MoovError("token", "response carried no access_token", resp.status_code)

        return MoovToken(
            access_token=data["access_token"],
            scopes=tuple(scopes),
            expires_in=data.get("expires_in"),
            token_type=data.get("token_type", "Bearer"),
        )

    # ------------------------------------------------------------
    # Step 2: authenticated calls
    # ------------------------------------------------------------
    async def _call(self, step: str, token: MoovToken, method: str, path: str,
                    json: Optional[dict] = None, headers: Optional[Dict[str, str]] = None):
        request_headers = {"Authorization": token.authorization}
        if headers:
            request_headers.update(headers)
        try:
            async with self._client() as client:
                resp = await client.request(method, path, json=json, headers=request_headers)
        except httpx.RequestError as e:
            logger.error(f"Moov {step} request failed: {e}")
            raise MoovError(step, str(e))

        if resp.status_code >= 400:
            logger.error(f"Moov {step} error {resp.status_code}: {resp.text}")
            raise MoovError(step, f"HTTP {resp.status_code}", resp.status_code)

        if not resp.content:
            return {}
        return resp.json()

    async def get_transfer(self, token: MoovToken, transfer_id: str) -> dict:
        return await self._call(
            "get_transfer", token, "GET", f"/accounts/{self.account_id}/transfers/{transfer_id}"
        )

    async def create_transfer(
        self,
        token: MoovToken,
        source_payment_method_id: str,
        destination_payment_method_id: str,
        amount_cents: int,
        description: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> dict:
        body = {
            "source": {"paymentMethodID": source_payment_method_id},
            "destination": {"paymentMethodID": destination_payment_method_id},
            "amount": {"currency": "USD", "value": amount_cents},
            "description": description,
            "metadata": metadata or {},
        }
        return await self._call(
            "create_transfer", token, "POST", f"/accounts/{self.account_id}/transfers",
            json=body, headers={"X-Idempotency-Key": str(uuid.uuid4())},
        )

    async def request_capabilities(self, token: MoovToken, account_id: str, capabilities: List[str]) -> dict:
        return await self._call(
            "request_capabilities", token, "POST", f"/accounts/{account_id}/capabilities",
            json={"capabilities": capabilities},
        )

    async def list_capabilities(self, token: MoovToken, account_id: str) -> list:
        data = await self._call("list_capabilities", token, "GET", f"/accounts/{account_id}/capabilities")
        return data if isinstance(data, list) else data.get("capabilities", [])

    # ------------------------------------------------------------
    # Two-step helpers used by services and routes
    # ------------------------------------------------------------
    def transfer_scopes(self) -> List[str]:
        return [
            f"/accounts/{self.account_id}/transfers.read",
            f"/accounts/{self.account_id}/transfers.write",
        ]

    async def transfer_status(self, transfer_id: str) -> dict:
        token = await self.fetch_access_token([f"/accounts/{self.account_id}/transfers.read"])
        return await self.get_transfer(token, transfer_id)

    async def send_transfer(self, source_payment_method_id: str, amount_cents: int,
                            description: str, metadata: Optional[Dict[str, str]] = None) -> dict:
        destination = settings.MOOV_DESTINATION_PAYMENT_METHOD_ID
        if not destination:
            raise MoovError("create_transfer", "MOOV_DESTINATION_PAYMENT_METHOD_ID is not configured")
        token = await self.fetch_access_token(self.transfer_scopes())
        transfer = await self.create_transfer(
            token, source_payment_method_id, destination, amount_cents, description, metadata
        )
        logger.info(f"Moov transfer created: {transfer.get('transferID')}")
        return transfer

    async def enable_capabilities(self, capabilities: List[str], account_id: Optional[str] = None) -> CapabilityResult:
        account_id = account_id or self.account_id
        token = await self.fetch_access_token([
            f"/accounts/{account_id}/capabilities.read",
            f"/accounts/{account_id}/capabilities.write",
        ])
        response = await self.request_capabilities(token, account_id, capabilities)
        current = await self.list_capabilities(token, account_id)
        return CapabilityResult(account_id=account_id, requested=list(capabilities),
                                response=response, current=current)

    async def capabilities(self, account_id: Optional[str] = None) -> list:
        account_id = account_id or self.account_id
        token = await self.fetch_access_token([f"/accounts/{account_id}/capabilities.read"])
        return await self.list_capabilities(token, account_id)


def get_moov_client() -> MoovClient:
    return MoovClient(
        domain=settings.MOOV_DOMAIN,
        public_key=settings.MOOV_PUBLIC_KEY,
        secret_key=settings.MOOV_SECRET_KEY,
        account_id=settings.MOOV_ACCOUNT_ID,
        timeout=settings.MOOV_TIMEOUT_SECONDS,
    )
