import logging
from typing import Dict, List, Optional

from web3 import Web3

from ..errors import ConfigurationError, HookDataError
from .hook_codec import HookKind
from .models import ServiceConfig, ServiceRecord
from .network import NetworkSettings, get_network_settings, is_valid_network

logger = logging.getLogger(__name__)

REQUIRED_SERVICE_FIELDS = ("id", "hook_address", "hook_type", "network")


class ServiceRegistry:
    """
    In-memory store of registered hook services, keyed by service id.

    Registering an existing id replaces the record (last write wins) but keeps
    its position, so listings stay in first-registration order. Two concurrent
    registrations of the same id are not serialized: whichever ledger read
    finishes last is stored.
    """

    def __init__(self, network_settings: NetworkSettings, gateway):
        self.network_settings = network_settings
        self.gateway = gateway
        self._services: Dict[str, ServiceRecord] = {}

    @staticmethod
    def validate_config(config: ServiceConfig) -> HookKind:
        missing = [name for name in REQUIRED_SERVICE_FIELDS if not getattr(config, name, None)]
        if missing:
            raise ConfigurationError(
                f"Missing required service fields: {', '.join(missing)}", missing
            )

        invalid = []
        if not Web3.is_address(config.hook_address):
            invalid.append("hook_address")
        if not is_valid_network(config.network):
            invalid.append("network")
        try:
            kind = HookKind.parse(config.hook_type)
        except HookDataError:
            invalid.append("hook_type")
        if invalid:
            raise ConfigurationError(
                f"Invalid service fields for {config.id}: {', '.join(invalid)}", invalid
            )
        return kind

    async def register(self, config: ServiceConfig) -> ServiceRecord:
        """
        Validates a service config, resolves its settlement router on-chain and stores it.

        Raises ConfigurationError before any ledger call, including for a service
        declared on another network than the registry serves. ContractNotFoundError
        and NetworkError from the ledger read leave the registry unchanged.
        """
        kind = self.validate_config(config)
        if get_network_settings(config.network).chain_id != self.network_settings.chain_id:
            raise ConfigurationError(
                f"Service {config.id} is on {config.network}, not on chain {self.network_settings.chain_id}",
                ["network"],
            )
        hook_address = Web3.to_checksum_address(config.hook_address)

        settlement_router = await self.gateway.get_settlement_router(hook_address)

        record = ServiceRecord(
            id=config.id,
            title=config.title,
            hook_type=kind,
            hook_address=hook_address,
            network=config.network,
            settlement_router=settlement_router,
            usdc_address=self.network_settings.usdc_address,
            chain_id=self.network_settings.chain_id,
            description=config.description,
            supporting_contracts=config.supporting_contracts,
            defaults=config.defaults,
        )
        if config.id in self._services:
            logger.info("Replacing service %s", config.id)
        self._services[config.id] = record
        logger.info(
            "Registered service %s (%s) hook=%s router=%s",
            record.id, kind.value, hook_address, settlement_router,
        )
        return record

    def get(self, service_id: str) -> Optional[ServiceRecord]:
        return self._services.get(service_id)

    def list(self) -> List[ServiceRecord]:
        return list(self._services.values())

    def __len__(self) -> int:
        return len(self._services)

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._services
