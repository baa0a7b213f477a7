import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import ClientConfig
from .constants import AGENT_CARD_PATH, SERVICES_PATH
from .contracts.ledger_gateway import LedgerGateway
from .core import hook_codec
from .core.authorization import AuthorizationPreparer, sign_typed_data
from .core.hook_codec import HookParams
from .core.models import (
    AgentCard,
    DiscoveredServices,
    PreparedAuthorization,
    ServiceRecord,
    TransactionOutcome,
)
from .core.network import NetworkSettings, get_network_settings
from .core.submission import SettlementSubmitter, validate_signature
from .errors import NetworkError

logger = logging.getLogger(__name__)


def _base_url(server_url: str) -> str:
    # Only one trailing slash is dropped
    return server_url[:-1] if server_url.endswith("/") else server_url


class X402Client:
    """
    Discovers x402 hook services and prepares, signs and submits payments for them.
    """

    def __init__(self, config: ClientConfig, gateway: Optional[LedgerGateway] = None):
        config.validate()
        self.config = config
        self.network_settings = get_network_settings(config.network, config.rpc_url)
        self.gateway = gateway or LedgerGateway(self.network_settings.rpc_url)
        self.preparer = AuthorizationPreparer(self.gateway)
        self.submitter = SettlementSubmitter(self.gateway)

    # --- DISCOVERY ---

    def _get_json(self, url: str) -> Any:
        try:
            resp = requests.get(url, timeout=self.config.discovery_timeout)
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}", url=url) from e
        if not resp.ok:
            raise NetworkError(
                f"Failed to fetch {url}: {resp.status_code} {resp.reason}", url=url, status=resp.status_code
            )
        return resp.json()

    async def discover(self, server_url: str) -> DiscoveredServices:
        """
        Fetches the agent card of a server. Failures are reported in the
        result's error field instead of being raised.
        """
        agent_card_url = f"{_base_url(server_url)}{AGENT_CARD_PATH}"
        try:
            data = await asyncio.to_thread(self._get_json, agent_card_url)
            agent_card = AgentCard.from_dict(data)
        except Exception as e:
            logger.warning("Discovery failed for %s: %s", server_url, e)
            return DiscoveredServices(
                server_url=server_url,
                agent_card=AgentCard(name="", url=server_url, services=[]),
                services=[],
                error=str(e) or type(e).__name__,
            )
        return DiscoveredServices(
            server_url=server_url,
            agent_card=agent_card,
            services=list(agent_card.services),
        )

    async def discover_all(self, server_urls: List[str]) -> List[DiscoveredServices]:
        """Discovers every server concurrently; one failure does not affect the others."""
        return list(await asyncio.gather(*(self.discover(url) for url in server_urls)))

    async def fetch_services(self, server_url: str) -> List[Dict[str, Any]]:
        """Lists a server's services with their hookData schemas."""
        data = await asyncio.to_thread(self._get_json, f"{_base_url(server_url)}{SERVICES_PATH}")
        return data.get("services", [])

    async def fetch_service(self, server_url: str, service_id: str) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self._get_json, f"{_base_url(server_url)}{SERVICES_PATH}/{quote(service_id, safe='')}"
        )

    # --- PAYMENT ---

    async def prepare_transaction(
        self,
        service: ServiceRecord,
        payer_address: str,
        pay_to: str,
        payment_amount: str,
        hook_data_params: HookParams,
        facilitator_fee: str = "0",
        validity_seconds: Optional[int] = None,
    ) -> PreparedAuthorization:
        return await self.preparer.prepare(
            service,
            payer_address,
            pay_to,
            payment_amount,
            hook_data_params,
            facilitator_fee=facilitator_fee,
            validity_seconds=validity_seconds,
        )

    def validate_signature(self, signature: str) -> bool:
        return validate_signature(signature)

    async def submit_transaction(
        self,
        prepared: PreparedAuthorization,
        signature: str,
        signer_private_key: str,
    ) -> TransactionOutcome:
        return await self.submitter.submit(prepared, signature, signer_private_key)

    def get_typed_data_for_signing(self, prepared: PreparedAuthorization) -> Dict[str, Any]:
        return prepared.typed_data

    def sign_typed_data(self, prepared: PreparedAuthorization, private_key: str) -> str:
        """Signs locally; wallets holding the payer key can sign the typed data instead."""
        return sign_typed_data(prepared.typed_data, private_key)

    def encode_hook_data(self, hook_data_params: HookParams) -> bytes:
        return hook_codec.encode_hook_data(hook_data_params)

    def get_network_settings(self) -> NetworkSettings:
        return self.network_settings


def create_x402_client(config: ClientConfig, gateway: Optional[LedgerGateway] = None) -> X402Client:
    return X402Client(config, gateway)
